"""Provider tables: which catalogs serve which kind of project, their categories and web links."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .models import Item, ProjectKind, Provider, SearchContext


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    icon: str = ""


MOD_CATEGORIES: Tuple[Category, ...] = (
    Category("adventure", "Adventure", "🗺️"),
    Category("decoration", "Decoration", "🎨"),
    Category("equipment", "Equipment", "⚔️"),
    Category("food", "Food", "🍕"),
    Category("library", "Library", "📚"),
    Category("magic", "Magic", "🧙"),
    Category("management", "Management", "📋"),
    Category("optimization", "Optimization", "⚡"),
    Category("storage", "Storage", "📦"),
    Category("technology", "Technology", "⚙️"),
    Category("utility", "Utility", "🛠️"),
    Category("world-gen", "World Gen", "🌍"),
)

MODRINTH_PLUGIN_CATEGORIES: Tuple[Category, ...] = (
    Category("optimization", "Optimization", "⚡"),
    Category("utility", "Utility", "🛠️"),
    Category("worldgen", "World Gen", "🌍"),
    Category("management", "Management", "📋"),
    Category("economy", "Economy", "💰"),
    Category("chat", "Chat", "💬"),
    Category("game-mechanics", "Mechanics", "⚙️"),
    Category("library", "Library", "📚"),
    Category("magic", "Magic", "🪄"),
)

# Spiget addresses categories by numeric id
SPIGET_CATEGORIES: Tuple[Category, ...] = (
    Category("10", "Admin", "🛡️"),
    Category("11", "Chat", "💬"),
    Category("12", "Economy", "💰"),
    Category("13", "Gameplay", "🎮"),
    Category("14", "Management", "📋"),
    Category("15", "Protection", "⚔️"),
    Category("16", "Utility", "🛠️"),
    Category("17", "World Management", "🌍"),
    Category("18", "Misc", "📦"),
    Category("19", "Library", "📚"),
)

HANGAR_CATEGORIES: Tuple[Category, ...] = (
    Category("admin", "Admin", "🛡️"),
    Category("chat", "Chat", "💬"),
    Category("dev-tools", "Dev Tools", "🛠️"),
    Category("economy", "Economy", "💰"),
    Category("gameplay", "Gameplay", "🎮"),
    Category("games", "Games", "🕹️"),
    Category("protection", "Protection", "⚔️"),
    Category("roleplay", "Roleplay", "🎭"),
    Category("world-management", "World", "🌍"),
    Category("misc", "Misc", "📦"),
)

KIND_PROVIDERS: Dict[ProjectKind, Tuple[Provider, ...]] = {
    ProjectKind.MOD: (Provider.MODRINTH, Provider.CURSEFORGE),
    ProjectKind.PLUGIN: (Provider.MODRINTH, Provider.SPIGET, Provider.HANGAR),
}

_CATEGORY_TABLES: Dict[Tuple[ProjectKind, Provider], Tuple[Category, ...]] = {
    (ProjectKind.MOD, Provider.MODRINTH): MOD_CATEGORIES,
    (ProjectKind.MOD, Provider.CURSEFORGE): MOD_CATEGORIES,
    (ProjectKind.PLUGIN, Provider.MODRINTH): MODRINTH_PLUGIN_CATEGORIES,
    (ProjectKind.PLUGIN, Provider.SPIGET): SPIGET_CATEGORIES,
    (ProjectKind.PLUGIN, Provider.HANGAR): HANGAR_CATEGORIES,
}

# Proxy servers run plugins that are independent of the game version
PROXY_LOADERS = ("velocity",)


def providers_for(kind: ProjectKind) -> Tuple[Provider, ...]:
    return KIND_PROVIDERS[kind]


def categories_for(kind: ProjectKind, provider: Optional[Provider]) -> Tuple[Category, ...]:
    """Categories offered by ``provider`` for ``kind``; empty when searching every provider."""
    if provider is None:
        return ()
    try:
        return _CATEGORY_TABLES[(kind, provider)]
    except KeyError:
        raise ValueError(f"{provider.value} does not serve {kind.value}s")


def is_valid_category(kind: ProjectKind, provider: Optional[Provider], category_id: str) -> bool:
    return any(category.id == category_id for category in categories_for(kind, provider))


def is_proxy_context(kind: ProjectKind, context: Optional[SearchContext]) -> bool:
    if kind != ProjectKind.PLUGIN or context is None or not context.loader:
        return False
    return context.loader.lower() in PROXY_LOADERS


def effective_filters(kind: ProjectKind, context: SearchContext) -> Tuple[Optional[str], Optional[str]]:
    """Return the (game_version, loader) pair sent upstream for ``context``.

    Proxy plugin servers drop the game version filter; other plugin servers send
    their lower-cased server type as the loader.
    """
    if is_proxy_context(kind, context):
        return None, context.loader.lower()
    if kind == ProjectKind.PLUGIN and context.loader:
        return context.game_version, context.loader.lower()
    return context.game_version, context.loader


def project_url(item: Item) -> Optional[str]:
    """Build the provider web page link for an item."""
    if item.provider == Provider.MODRINTH:
        return f"https://modrinth.com/project/{item.slug}" if item.slug else None
    elif item.provider == Provider.CURSEFORGE:
        return f"https://www.curseforge.com/minecraft/mc-mods/{item.slug}" if item.slug else None
    elif item.provider == Provider.SPIGET:
        return f"https://www.spigotmc.org/resources/{item.id}/"
    elif item.provider == Provider.HANGAR:
        if item.slug and item.author:
            return f"https://hangar.papermc.io/{item.author}/{item.slug}"
        return None
    raise ValueError(f"Unhandled provider: {item.provider}")
