from __future__ import annotations

import json
from pathlib import Path

import pytest

from truthlens.credibility import DomainTable, load_domain_table, resolve_host, score
from truthlens.models import CredibilityTier

TABLE = DomainTable.from_mapping(
    {
        "A_CLASS": {"domains": ["gov.cn", "xinhuanet.com", "shared.example"]},
        "B_CLASS": {"domains": ["reuters.com", "shared.example"]},
        "C_CLASS": {"domains": ["sina.com.cn"]},
        "D_CLASS": {"domains": ["weibo.com"]},
    },
)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.xinhuanet.com/politics/2024-01/01/c_1.htm",
        "http://xinhuanet.com",
        "https://www.gov.cn/zhengce/content.htm",
        "https://news.gov.cn/article",
    ],
)
def test_a_class_domains_get_full_weight(url: str) -> None:
    result = score(url, TABLE)
    assert result.tier is CredibilityTier.A_CLASS
    assert result.weight == 1.0
    assert result.label == "权威官媒"


def test_domain_in_two_classes_resolves_to_first_class() -> None:
    result = score("https://shared.example/page", TABLE)
    assert result.tier is CredibilityTier.A_CLASS


@pytest.mark.parametrize(
    ("url", "tier", "weight"),
    [
        ("https://www.reuters.com/world/", CredibilityTier.B_CLASS, 0.8),
        ("https://finance.sina.com.cn/a.shtml", CredibilityTier.C_CLASS, 0.5),
        ("https://weibo.com/12345/abc", CredibilityTier.D_CLASS, 0.2),
    ],
)
def test_lower_classes(url: str, tier: CredibilityTier, weight: float) -> None:
    result = score(url, TABLE)
    assert result.tier is tier
    assert result.weight == weight


@pytest.mark.parametrize("url", ["https://example.org/post", "http://localhost:3000/", "https://notgov.cn.example.net/"])
def test_unlisted_urls_are_unknown(url: str) -> None:
    result = score(url, TABLE)
    assert result.tier is CredibilityTier.UNKNOWN
    assert result.weight == 0.4
    assert result.label == "未知信源"


def test_suffix_match_respects_label_boundaries() -> None:
    assert score("https://fakereuters.com/story", TABLE).tier is CredibilityTier.UNKNOWN


@pytest.mark.parametrize("url", ["not a url", "", "/relative/path", "mailto:someone@example.com"])
def test_malformed_urls_are_invalid(url: str) -> None:
    result = score(url, TABLE)
    assert result.tier is CredibilityTier.INVALID
    assert result.weight == 0.3
    assert result.label == "非法链接"


def test_non_string_url_is_invalid() -> None:
    assert score(None, TABLE).tier is CredibilityTier.INVALID  # type: ignore[arg-type]


def test_resolve_host_strips_leading_www_only() -> None:
    assert resolve_host("https://WWW.Example.com/x") == "example.com"
    assert resolve_host("https://news.www.example.com/") == "news.www.example.com"


def test_packaged_table_has_every_class() -> None:
    table = load_domain_table()
    for tier in (CredibilityTier.A_CLASS, CredibilityTier.B_CLASS, CredibilityTier.C_CLASS, CredibilityTier.D_CLASS):
        assert table.domains(tier)
    assert score("https://www.xinhuanet.com/", table).tier is CredibilityTier.A_CLASS


def test_load_domain_table_from_path(tmp_path: Path) -> None:
    path = tmp_path / "table.json"
    path.write_text(json.dumps({"D_CLASS": {"domains": ["www.Forum.Example"]}}), encoding="utf-8")
    table = load_domain_table(path)
    assert table.domains(CredibilityTier.A_CLASS) == ()
    assert score("https://forum.example/t/1", table).tier is CredibilityTier.D_CLASS
