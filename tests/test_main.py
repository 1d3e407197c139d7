import httpx
import pytest
from dependency_injector import providers

from archive_uploader.__main__ import build_parser, cli_overrides, run_application
from archive_uploader.infrastructure.containers import Container

from conftest import FakeObjectStore, build_zip

URL_A = "https://example.org/Images_png_01.zip"
URL_B = "https://example.org/Images_png_02.zip"


def _container(tmp_path, archives, store):
    def handler(request):
        url = str(request.url)
        if url not in archives:
            return httpx.Response(404)
        return httpx.Response(200, content=archives[url])

    container = Container()
    container.config.from_dict(
        {
            "uploader": {
                "bucket_name": "from-settings",
                "resume_at": 1,
                "parallel": False,
                "remove_files": False,
                "scratch_dir": str(tmp_path),
                "scratch_name_template": "Images_png_{ordinal:02d}.zip",
                "timeout": 0,
                "follow_redirects": True,
                "downloader": {"chunk_size": 4096},
                "unpacker": {"chunk_size": 4096},
                "catalog": {"urls": [URL_A, URL_B]},
            },
            "logging": {"level": "INFO"},
        }
    )
    container.http_client.override(
        providers.Object(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    )
    container.object_store.override(providers.Object(store))
    return container


def test_only_given_flags_override_settings():
    args = build_parser().parse_args(["--resume-at", "3"])
    assert cli_overrides(args) == {"uploader": {"resume_at": 3}}

    args = build_parser().parse_args(["--parallel", "--bucket-name", "other"])
    assert cli_overrides(args) == {
        "uploader": {"bucket_name": "other", "parallel": True}
    }


@pytest.mark.asyncio
async def test_cli_values_reach_the_pipeline(tmp_path):
    store = FakeObjectStore()
    archives = {URL_A: build_zip({"a.png": b"a"}), URL_B: build_zip({"b.png": b"b"})}
    container = _container(tmp_path, archives, store)
    args = build_parser().parse_args(
        ["--bucket-name", "cli-bucket", "--resume-at", "2", "--remove-files"]
    )

    exit_code = await run_application(args, container)

    assert exit_code == 0
    assert set(store.objects) == {("cli-bucket", "b.png")}
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_failures_exit_zero_unless_strict(tmp_path):
    archives = {URL_A: build_zip({"a.png": b"a"})}

    lenient = await run_application(
        build_parser().parse_args([]), _container(tmp_path, archives, FakeObjectStore())
    )
    strict = await run_application(
        build_parser().parse_args(["--strict", "--parallel"]),
        _container(tmp_path, archives, FakeObjectStore()),
    )

    assert lenient == 0
    assert strict == 1


@pytest.mark.asyncio
async def test_invalid_catalog_exits_with_error(tmp_path):
    container = _container(tmp_path, {}, FakeObjectStore())
    container.config.uploader.catalog.urls.from_value(["not a url"])

    assert await run_application(build_parser().parse_args([]), container) == 1
