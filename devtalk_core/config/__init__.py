"""配置加载：环境变量、.env 与 config.yaml。"""

from devtalk_core.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
