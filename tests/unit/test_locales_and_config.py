# tests/unit/test_locales_and_config.py
"""针对语言策略 `LocalePolicy` 与配置模型 `TransSyncConfig` 的单元测试。"""

import pytest
from pydantic import ValidationError

from trans_sync.config import (
    DatabaseSettings,
    LocaleSettings,
    TranslationSettings,
    TransSyncConfig,
)
from trans_sync.exceptions import UnsupportedLocaleError
from trans_sync.locales import LocalePolicy, language_name


@pytest.fixture
def policy() -> LocalePolicy:
    return LocalePolicy(LocaleSettings())


def test_targets_exclude_canonical_locale(policy: LocalePolicy) -> None:
    assert policy.canonical == "en"
    assert "en" not in policy.targets
    assert policy.targets[:4] == ["sv", "de", "fr", "es"]
    assert len(policy.targets) == 12


@pytest.mark.parametrize("locale, priority", [("sv", 1), ("de", 1), ("fr", 1), ("es", 1), ("ja", 2), ("zh", 2)])
def test_priority_for(policy: LocalePolicy, locale: str, priority: int) -> None:
    assert policy.priority_for(locale) == priority


def test_regenerate_priority_beats_everything(policy: LocalePolicy) -> None:
    assert policy.regenerate_priority == 0
    assert all(policy.regenerate_priority < policy.priority_for(t) for t in policy.targets)


@pytest.mark.parametrize("bad", [None, "", "xx", "en_US!", "ko"])
def test_validate_rejects_missing_or_unsupported(policy: LocalePolicy, bad: str) -> None:
    with pytest.raises(UnsupportedLocaleError) as exc_info:
        policy.validate(bad)
    assert exc_info.value.supported_locales == list(policy.supported)


def test_validate_target_rejects_canonical(policy: LocalePolicy) -> None:
    assert policy.validate_target("sv") == "sv"
    with pytest.raises(UnsupportedLocaleError):
        policy.validate_target("en")


def test_language_name_falls_back_to_code() -> None:
    assert language_name("sv") == "Swedish"
    assert language_name("tlh") == "tlh"


def test_config_defaults() -> None:
    config = TransSyncConfig()
    assert config.worker.max_jobs_per_run == 5
    assert config.worker.max_attempts == 3
    assert config.translation.batch_size == 15
    assert config.translation.delimiter == " ||| "
    assert config.openai.model == "gpt-4o-mini"
    assert config.serving.cache_ttl == 300
    assert config.review.completion_threshold == 70


def test_config_reads_nested_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """测试 `TRANSSYNC_` 前缀与 `__` 嵌套分隔符的环境变量覆盖。"""
    monkeypatch.setenv("TRANSSYNC_WORKER__MAX_JOBS_PER_RUN", "10")
    monkeypatch.setenv("TRANSSYNC_ACTIVE_ENGINE", "openai")
    monkeypatch.setenv("TRANSSYNC_OPENAI__API_KEY", "sk-test")
    config = TransSyncConfig()
    assert config.worker.max_jobs_per_run == 10
    assert config.active_engine == "openai"
    assert config.openai.api_key is not None
    assert config.openai.api_key.get_secret_value() == "sk-test"


def test_database_url_requires_async_driver() -> None:
    with pytest.raises(ValidationError, match="不支持的运行期数据库驱动"):
        DatabaseSettings(url="sqlite:///plain.db")
    assert DatabaseSettings(url="postgresql+asyncpg://u:p@h/db").url.startswith("postgresql")


def test_canonical_locale_must_be_supported() -> None:
    with pytest.raises(ValidationError):
        LocaleSettings(canonical="en", supported=["sv", "de"])


def test_blank_delimiter_is_rejected() -> None:
    with pytest.raises(ValidationError):
        TranslationSettings(delimiter="   ")
