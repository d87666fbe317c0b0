from pathlib import Path

from conversational_orchestrator.config import DEFAULT_SYSTEM_INSTRUCTIONS, load_settings
from conversational_orchestrator.schemas import ChatRequest

ENV_NAMES = [
    "DATABASE_URL",
    "UPLOADS_DIR",
    "OPENAI_API_KEY",
    "OPENAI_CHAT_MODELS",
    "OPENAI_EMBEDDING_MODELS",
    "OLLAMA_HOST",
    "OLLAMA_CHAT_MODELS",
    "OLLAMA_EMBEDDING_MODELS",
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "SHUTDOWN_TIMEOUT",
    "CUSTOM_OPENAI_API_KEY",
    "CUSTOM_OPENAI_MODEL_NAME",
    "CUSTOM_OPENAI_API_URL",
]


def clear_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path, monkeypatch):
    clear_env(monkeypatch)

    settings = load_settings(secrets_dir=tmp_path)

    assert settings.port == 3001
    assert settings.host == "0.0.0.0"
    assert settings.openai_api_key is None
    assert settings.custom_openai.api_key == ""
    assert settings.shutdown_timeout == 10.0


def test_environment_and_secret_files(tmp_path, monkeypatch):
    clear_env(monkeypatch)
    (tmp_path / "OPENAI_API_KEY").write_text("sk-from-secret\n")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
    monkeypatch.setenv("OPENAI_CHAT_MODELS", "gpt-4o, gpt-4o-mini,")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("SHUTDOWN_TIMEOUT", "2.5")
    monkeypatch.setenv("UPLOADS_DIR", "/srv/uploads")
    monkeypatch.setenv("CUSTOM_OPENAI_MODEL_NAME", "local-model")

    settings = load_settings(secrets_dir=tmp_path)

    assert settings.openai_api_key == "sk-from-secret"
    assert settings.openai_chat_models == ["gpt-4o", "gpt-4o-mini"]
    assert settings.port == 8080
    assert settings.shutdown_timeout == 2.5
    assert settings.uploads_dir == Path("/srv/uploads")
    assert settings.custom_openai.model_name == "local-model"


def test_missing_system_instructions_use_default():
    request = ChatRequest.model_validate(
        {
            "message": {"messageId": "m1", "chatId": "c1", "content": "hi"},
            "optimizationMode": "speed",
            "focusMode": "web",
            "systemInstructions": None,
        }
    )

    assert request.system_instructions == DEFAULT_SYSTEM_INSTRUCTIONS
    assert request.history == []
    assert request.files == []
