from podai import config
from podai.models import Config


def test_load_default_config_when_missing():
    cfg = config.load_config()
    assert isinstance(cfg, Config)
    assert cfg.backend == "auto"
    assert cfg.max_file_size_mb == 10
    assert cfg.max_file_bytes == 10 * 1024 * 1024
    assert cfg.history_limit == 50


def test_save_and_load_config():
    cfg = Config(backend="gemini", transform_model="gemini-2.5-pro")
    config.save_config(cfg)

    loaded = config.load_config()
    assert loaded.backend == "gemini"
    assert loaded.transform_model == "gemini-2.5-pro"


def test_update_config_validates_keys():
    config.update_config(backend="openai")
    loaded = config.load_config()
    assert loaded.backend == "openai"

    try:
        config.update_config(unknown="value")
    except config.ConfigError:
        pass
    else:
        raise AssertionError("Expected ConfigError for invalid key")


def test_update_config_rejects_unknown_backend():
    try:
        config.update_config(backend="whisper")
    except config.ConfigError as exc:
        assert "whisper" in str(exc)
    else:
        raise AssertionError("Expected ConfigError for unknown backend")


def test_update_config_caps_history_limit():
    try:
        config.update_config(history_limit=60)
    except config.ConfigError as exc:
        assert "50" in str(exc)
    else:
        raise AssertionError("Expected ConfigError for history_limit above 50")
    assert config.load_config().history_limit == 50


def test_corrupt_config_raises_config_error():
    config.CONFIG_PATH.write_text("{not json")
    try:
        config.load_config()
    except config.ConfigError:
        pass
    else:
        raise AssertionError("Expected ConfigError for corrupt file")


def test_api_keys_fall_back_to_environment(monkeypatch):
    cfg = Config()
    assert config.gemini_api_key(cfg) is None
    assert config.openai_api_key(cfg) is None

    monkeypatch.setenv("GOOGLE_API_KEY", "google-key")
    monkeypatch.setenv("OPENAI_API_KEY", "openai-key")
    assert config.gemini_api_key(cfg) == "google-key"
    assert config.openai_api_key(cfg) == "openai-key"

    cfg.gemini_api_key = "stored-key"
    assert config.gemini_api_key(cfg) == "stored-key"
