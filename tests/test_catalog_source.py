import pytest

from archive_uploader.application.domain import CatalogEntry
from archive_uploader.application.exceptions import ConfigurationError
from archive_uploader.infrastructure.catalog_source import SettingsCatalogSource


def test_ordinals_follow_configuration_order():
    source = SettingsCatalogSource(
        [
            "https://example.org/data/Images_png_01.zip",
            {"url": "https://example.org/data/Images_png_02.zip"},
        ]
    )

    assert source.load() == [
        CatalogEntry(1, "https://example.org/data/Images_png_01.zip"),
        CatalogEntry(2, "https://example.org/data/Images_png_02.zip"),
    ]


def test_empty_catalog_is_allowed():
    assert SettingsCatalogSource(None).load() == []


@pytest.mark.parametrize(
    "urls",
    [
        ["ftp://example.org/a.zip"],
        ["not a url"],
    ],
)
def test_invalid_catalog_raises_configuration_error(urls):
    with pytest.raises(ConfigurationError):
        SettingsCatalogSource(urls).load()


def test_repeated_urls_are_kept_and_logged(caplog):
    url = "https://example.org/data/Images_png_01.zip"
    source = SettingsCatalogSource([url, url])

    with caplog.at_level("WARNING"):
        entries = source.load()

    assert entries == [CatalogEntry(1, url), CatalogEntry(2, url)]
    assert "more than once" in caplog.text
