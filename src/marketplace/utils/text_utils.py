"""Text helpers for rendering catalog items on the console."""

import re


def truncate_description(text: str, max_length: int = 80) -> str:
    """
    将描述压缩为单行并截断，超出部分用"..."表示。

    Args:
        text: 原始描述
        max_length: 最大字符长度

    Returns:
        单行文本，超长时在单词边界截断
    """
    if not text:
        return ""

    text = re.sub(r'\s+', ' ', text.strip())
    if len(text) <= max_length:
        return text

    cut = max_length - 3
    space_pos = text.rfind(' ', 0, cut)
    if space_pos > cut * 0.7:  # 至少保留70%的长度
        cut = space_pos

    return f"{text[:cut].rstrip()}..."


def format_downloads(count: int) -> str:
    """Format a download counter the way catalog sites do (1.2K, 3.4M)."""
    if count >= 1_000_000_000:
        return f"{count / 1_000_000_000:.1f}B"
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)
