from formwork.aws.function import FunctionBuilder, Zip
from formwork.stack.assets import Asset, collect_assets
from formwork.stack.builder import StackBuilder


def _zip_function(role, resource_id: str, archive: Zip):
    return (
        FunctionBuilder(resource_id, "x86_64", memory=128, timeout=3)
        .role(role)
        .code(archive)
        .handler("index.handler")
        .runtime("python3.12")
        .build()
    )


def test_functions_sharing_an_archive_yield_one_asset(role, tmp_path):
    archive = tmp_path / "app.zip"
    archive.write_bytes(b"zip content")
    first = _zip_function(role, "first", Zip("artifacts", str(archive)))
    second = _zip_function(role, "second", Zip("artifacts", str(archive)))

    stack = StackBuilder().register_many([role, first, second]).finalize()

    assets = collect_assets(stack)
    assert len(assets) == 1
    assert assets[0].path == str(archive)
    assert assets[0].s3_bucket == "artifacts"
    assert stack.get_assets() == assets


def test_assets_are_collected_in_registration_order(role, tmp_path):
    one = tmp_path / "one.zip"
    two = tmp_path / "two.zip"
    one.write_bytes(b"one")
    two.write_bytes(b"two")
    second = _zip_function(role, "second", Zip("artifacts", str(two)))
    first = _zip_function(role, "first", Zip("artifacts", str(one)))

    stack = StackBuilder().register_many([second, role, first]).finalize()

    assert [asset.path for asset in collect_assets(stack)] == [str(two), str(one)]


def test_missing_archive_is_still_collected(role):
    function = _zip_function(role, "fn", Zip("artifacts", "does/not/exist.zip"))

    stack = StackBuilder().register_many([role, function]).finalize()

    assert [asset.path for asset in collect_assets(stack)] == ["does/not/exist.zip"]


def test_stack_without_code_archives_has_no_assets(table):
    assert collect_assets(StackBuilder().register(table).finalize()) == []


def test_asset_str_shows_destination():
    asset = Asset(path="dist/app.zip", s3_bucket="artifacts", s3_key="abc.zip")

    assert str(asset) == "dist/app.zip -> s3://artifacts/abc.zip"
