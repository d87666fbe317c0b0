"""
Runtime configuration.

Every value is looked up in the same order: a secret file
'<SECRETS_DIR>/<NAME>' (mounted secrets), then the '<NAME>' environment
variable, then the default declared on 'Settings'. 'load_settings()' is called
once by the entry point; tests build 'Settings' directly.
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_INSTRUCTIONS = """You are a trusted Technical Troubleshooting Assistant built to help users fix issues related to gadgets, home appliances, consumer electronics, and hardware devices. Your mission is to give accurate, safe, and actionable guidance, including visual tutorials, clear steps, and trusted references.

- Always prioritize user safety, device integrity, and ethical practices.
- Do not provide guidance or responses that involve unsafe actions, disassembly of high-voltage parts, illegal modifications, or security circumvention (e.g., unlocking, jailbreaking, bypassing safety locks).

If the user's request violates these guardrails, respond politely with a message like:

"I'm sorry, I can't assist with that request as it may be unsafe or unethical. Would you like help diagnosing or maintaining your device safely instead?"

Response Structure (Always Follow This Order)
1. Step-by-Step Solution:
- List precise, numbered steps for troubleshooting or fixing the problem.
- Use short sentences.
- If you need special tools, please just mention them.
- Only include steps that are safe for non-professionals. Do not add long answers.

2. Safety & Caution:
Mention key precautions.
If a step could be unsafe for general users, instruct them not to proceed and recommend contacting a professional.

Guardrails (Strict Rules):

You must refuse or redirect if the user request involves:
- Bypassing device security, DRM, or software restrictions (unlocking, rooting, etc.)
- Actions that could cause personal injury, fire, electric shock, or data loss

If the issue requires professional advice or help, please mention the same at the end."""


class CustomOpenAISettings(BaseModel):
    """Credentials of the synthetic 'custom_openai' chat model provider."""

    api_key: str = ""
    model_name: str = ""
    base_url: str = ""


class Settings(BaseModel):
    database_url: str = "sqlite+aiosqlite:///data/db.sqlite"
    uploads_dir: Path = Path("uploads")

    openai_api_key: str | None = None
    openai_chat_models: list[str] = Field(default_factory=lambda: ["gpt-4o-mini", "gpt-4o"])
    openai_embedding_models: list[str] = Field(
        default_factory=lambda: ["text-embedding-3-small", "text-embedding-3-large"]
    )

    ollama_host: str | None = None
    ollama_chat_models: list[str] = Field(default_factory=lambda: ["llama3.2"])
    ollama_embedding_models: list[str] = Field(default_factory=lambda: ["nomic-embed-text"])

    custom_openai: CustomOpenAISettings = Field(default_factory=CustomOpenAISettings)

    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"
    shutdown_timeout: float = 10.0


def _read_secret(name: str, secrets_dir: Path) -> str | None:
    """Load a value from '<secrets_dir>/<name>' or the '<name>' environment variable.

    Returns None when neither is set or the value is blank.
    """
    secret_file = secrets_dir / name
    if secret_file.is_file():
        value = secret_file.read_text().strip()
    else:
        value = os.environ.get(name, "").strip()
    return value or None


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings(secrets_dir: Path | None = None) -> Settings:
    """Build 'Settings' from secret files and the environment."""
    secrets_dir = secrets_dir or Path(os.environ.get("SECRETS_DIR", "/secrets"))

    def read(name: str) -> str | None:
        return _read_secret(name, secrets_dir)

    values: dict[str, object] = {}
    scalar_keys = {
        "DATABASE_URL": "database_url",
        "UPLOADS_DIR": "uploads_dir",
        "OPENAI_API_KEY": "openai_api_key",
        "OLLAMA_HOST": "ollama_host",
        "HOST": "host",
        "PORT": "port",
        "LOG_LEVEL": "log_level",
        "SHUTDOWN_TIMEOUT": "shutdown_timeout",
    }
    for env_name, field_name in scalar_keys.items():
        value = read(env_name)
        if value is not None:
            values[field_name] = value

    list_keys = {
        "OPENAI_CHAT_MODELS": "openai_chat_models",
        "OPENAI_EMBEDDING_MODELS": "openai_embedding_models",
        "OLLAMA_CHAT_MODELS": "ollama_chat_models",
        "OLLAMA_EMBEDDING_MODELS": "ollama_embedding_models",
    }
    for env_name, field_name in list_keys.items():
        value = read(env_name)
        if value is not None:
            values[field_name] = _split_list(value)

    values["custom_openai"] = CustomOpenAISettings(
        api_key=read("CUSTOM_OPENAI_API_KEY") or "",
        model_name=read("CUSTOM_OPENAI_MODEL_NAME") or "",
        base_url=read("CUSTOM_OPENAI_API_URL") or "",
    )
    return Settings.model_validate(values)
