"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("DEVTALK_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """DevTalk 配置。"""

    # ---- Responder 相关配置 ----
    default_responder: str = Field(
        default="echo",
        description="默认 Responder：echo（离线回显）、glm 或 kimi",
    )
    default_model: str = Field(
        default="devtalk-chat",
        description="逻辑模型名，由 registry 映射为具体厂商模型",
    )
    system_prompt: str = Field(
        default="You are DevTalk, a concise assistant for software developers.",
        description="发给 LLM 的 system 提示词",
    )
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="生成温度")
    max_context_messages: int = Field(default=20, ge=1, le=100, description="最大上下文消息数")

    # Kimi
    kimi_api_key: Optional[str] = Field(default=None, description="Kimi API 密钥")
    kimi_base_url: str = Field(default="https://api.moonshot.cn/v1", description="Kimi API 基础URL")
    # GLM / BigModel
    glm_api_key: Optional[str] = Field(default=None, description="GLM API 密钥")
    glm_base_url: str = Field(
        default="https://open.bigmodel.cn/api/paas/v4",
        description="GLM API 基础URL",
    )
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- 交换协调 ----
    responder_timeout: float = Field(
        default=45.0,
        gt=0.0,
        description="单次 Responder 调用的超时时间（秒），超时按失败处理",
    )
    fallback_content: str = Field(
        default="(failed) please try again",
        min_length=1,
        description="Responder 失败时 AI 占位消息的固定内容",
    )

    # ---- 存储与日志 ----
    storage_backend: Literal["memory", "json"] = Field(default="memory", description="会话存储后端")
    storage_root: str = Field(default=".storage", description="存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- HTTP 边界 ----
    api_prefix: str = Field(default="", description="HTTP 路由前缀，例如 /api")
    health_prefix: Optional[str] = Field(
        default=None,
        description="存活探针的路由前缀，缺省时与 api_prefix 相同",
    )
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="允许跨域访问的前端地址",
    )

    model_config = SettingsConfigDict(
        env_prefix="DEVTALK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("kimi_api_key", "glm_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @field_validator("api_prefix", "health_prefix")
    @classmethod
    def normalize_prefix(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
