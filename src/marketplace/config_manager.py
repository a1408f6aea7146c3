"""Configuration management for the add-on marketplace."""

import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

from .modules.models import ProjectKind, Provider, SortOrder
from .utils.logger import get_utils_logger


@dataclass
class AppConfig:
    """Application configuration data class."""
    name: str
    version: str
    author: str
    description: str


@dataclass
class MarketplaceConfig:
    """Per-kind marketplace settings."""
    kind: ProjectKind
    default_provider: Optional[Provider]
    default_sort: SortOrder
    page_size: int
    page_size_options: List[int] = field(default_factory=lambda: [16, 25, 50])
    optional_default_selected: bool = False
    parallel_lookups: bool = False
    max_concurrent_lookups: int = 4


DEFAULT_MARKETPLACE = {
    "mod": {"default_provider": "Modrinth", "default_sort": "Downloads", "page_size": 16},
    "plugin": {"default_provider": "Modrinth", "default_sort": "Relevance", "page_size": 25},
}


class ConfigManager:
    """Manages application configuration from YAML files."""

    def __init__(self, config_dir: Path = Path("config")):
        self.config_dir = config_dir
        self._config_cache = {}
        self.logger = get_utils_logger("config_manager")
        self.logger.info(f"配置管理器初始化完成: config_dir={config_dir}")

    def load_config(self, config_name: str) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if config_name in self._config_cache:
            self.logger.debug(f"使用缓存配置: {config_name}")
            return self._config_cache[config_name]

        config_path = self.config_dir / f"{config_name}.yaml"
        self.logger.info(f"加载配置文件: {config_path}")

        if not config_path.exists():
            self.logger.error(f"配置文件不存在: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)

            if config is None:
                self.logger.warning(f"配置文件为空: {config_name}")
                config = {}

            self.logger.debug(f"配置解析成功: {config_name} ({len(config)} 个顶级键)")
            self._config_cache[config_name] = config
            return config

        except yaml.YAMLError as e:
            self.logger.error(f"YAML解析失败 [{config_name}]: {e}")
            raise
        except IOError as e:
            self.logger.error(f"读取配置文件失败 [{config_path}]: {e}")
            raise

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        self.logger.debug("获取应用配置")
        try:
            app_section = self.load_config("app")["app"]
            app_config = AppConfig(
                name=app_section["name"],
                version=app_section["version"],
                author=app_section.get("author", ""),
                description=app_section.get("description", ""),
            )
            self.logger.debug(f"应用配置加载成功: {app_config.name} v{app_config.version}")
            return app_config

        except KeyError as e:
            self.logger.error(f"应用配置缺少必需字段: {e}")
            raise

    def get_marketplace_config(self, kind: ProjectKind) -> MarketplaceConfig:
        """Get marketplace settings for ``kind``.

        Missing files or sections fall back to built-in defaults; malformed
        values raise ``ValueError``.
        """
        try:
            config = self.load_config("marketplace").get("marketplace", {}) or {}
        except FileNotFoundError:
            self.logger.warning("marketplace.yaml 不存在，使用默认市场配置")
            config = {}

        section = dict(DEFAULT_MARKETPLACE[kind.value])
        section.update(config.get(f"{kind.value}s", {}) or {})
        dependencies = config.get("dependencies", {}) or {}

        provider_value = section.get("default_provider")
        default_provider = None
        if provider_value and str(provider_value).lower() != "all":
            default_provider = Provider.parse(str(provider_value))

        page_size = int(section.get("page_size", 16))
        options = [int(o) for o in section.get("page_size_options", [16, 25, 50])]
        if page_size not in options:
            options = sorted(options + [page_size])

        marketplace_config = MarketplaceConfig(
            kind=kind,
            default_provider=default_provider,
            default_sort=SortOrder.parse(str(section.get("default_sort", "Downloads"))),
            page_size=page_size,
            page_size_options=options,
            optional_default_selected=bool(dependencies.get("optional_default_selected", False)),
            parallel_lookups=bool(dependencies.get("parallel_lookups", False)),
            max_concurrent_lookups=int(dependencies.get("max_concurrent_lookups", 4)),
        )
        self.logger.debug(f"市场配置加载成功 [{kind.value}]: {marketplace_config}")
        return marketplace_config

    def save_config(self, config_name: str, config_data: Dict[str, Any]) -> None:
        """Save configuration to YAML file."""
        config_path = self.config_dir / f"{config_name}.yaml"
        self.logger.info(f"保存配置文件: {config_path}")

        try:
            with open(config_path, 'w', encoding='utf-8') as file:
                yaml.dump(config_data, file, default_flow_style=False, indent=2, allow_unicode=True)

            if config_name in self._config_cache:
                del self._config_cache[config_name]
                self.logger.debug(f"已清除配置缓存: {config_name}")

            self.logger.info(f"配置文件保存成功: {config_name}")

        except IOError as e:
            self.logger.error(f"保存配置文件失败 [{config_path}]: {e}")
            raise
