"""Tests for configuration loading and environment overrides."""

import pytest
import yaml

from storyline.config import Config, ConfigModel, load_config, save_config


class TestDefaults:
    def test_defaults(self):
        config = ConfigModel()
        assert config.clustering.enabled is False
        assert config.clustering.threshold == 0.55
        assert config.clustering.window_hours == 72
        assert config.clustering.candidate_limit == 10
        assert config.enrichment.updates_limit == 3
        assert config.pretranslation.concurrency == 4
        assert config.pretranslation.item_timeout_ms == 8000
        assert config.pretranslation.done_max == 10_000
        assert config.translation.chunk_max_chars == 2800
        assert config.translation.max_article_chars == 50_000

    def test_missing_file_is_fine(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml", environ={})
        assert config.log_level == "INFO"


class TestEnvOverrides:
    def test_overrides(self, tmp_path):
        environ = {
            "CLUSTERING_ENABLED": "true",
            "CLUSTER_TRGM_THRESHOLD": "0.7",
            "CLUSTER_UPDATE_STANCE_MODE": "RULES",
            "CLUSTER_LANG": "tr_tr",
            "PRETRANS_CONCURRENCY": "8",
            "MT_PROVIDER": "deepl",
            "ARTICLE_PRETRANS_LANGS": "de, FR",
            "MT_CHUNK_MAX_CHARS": "1200",
        }
        config = load_config(tmp_path / "absent.yaml", environ=environ)
        assert config.clustering.enabled is True
        assert config.clustering.threshold == 0.7
        assert config.clustering.stance_mode == "rules"
        assert config.enrichment.lang == "tr-TR"
        assert config.pretranslation.concurrency == 8
        assert config.pretranslation.provider_tag == "deepl"
        assert config.pretranslation.article_langs == ["de", "fr"]
        assert config.translation.chunk_max_chars == 1200

    def test_env_wins_over_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"clustering": {"enabled": False, "window_hours": 24}}))
        config = load_config(path, environ={"CLUSTERING_ENABLED": "1"})
        assert config.clustering.enabled is True
        assert config.clustering.window_hours == 24

    def test_unparsable_value_is_ignored(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml", environ={"PRETRANS_CONCURRENCY": "lots"})
        assert config.pretranslation.concurrency == 4

    def test_empty_value_is_ignored(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml", environ={"MARKET": "  "})
        assert config.pretranslation.market is None

    def test_pool_sizes_are_clamped(self, tmp_path):
        config = load_config(
            tmp_path / "absent.yaml",
            environ={"PRETRANS_CONCURRENCY": "32", "PRETRANS_SCAN_CONCURRENCY": "0"},
        )
        assert config.pretranslation.concurrency == 16
        assert config.pretranslation.scan_concurrency == 1

    def test_out_of_range_value_is_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(tmp_path / "absent.yaml", environ={"PRETRANS_RETRY_ATTEMPTS": "9"})


class TestFiles:
    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("clustering: [unclosed")
        with pytest.raises(ValueError):
            load_config(path, environ={})

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        save_config(ConfigModel(log_level="DEBUG"), path)
        assert load_config(path, environ={}).log_level == "DEBUG"

    def test_manager_resolves_secrets(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(ConfigModel(postgres={"password_env": "DB_PW"}), path)
        config = Config(path, environ={"DB_PW": "s3cret", "OPENAI_API_KEY": "sk-test"})
        assert config.get_db_config()["password"] == "s3cret"
        assert config.get_llm_config()["api_key"] == "sk-test"
