from arcadegate.core.config.manager import ConfigManager
from arcadegate.core.config.models import AuthorityConfig
from arcadegate.core.config.paths import ConfigFsPaths

__all__ = ["ConfigManager", "AuthorityConfig", "ConfigFsPaths"]
