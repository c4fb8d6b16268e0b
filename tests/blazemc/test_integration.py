import pytest
import requests

from blazemc.config import DEFAULT_MANIFEST_URL, DEFAULT_VERSION
from blazemc.asset_index import fetch_asset_index
from blazemc.manifest import ManifestResolver


@pytest.mark.integration
def test_resolve_real_manifest_and_index(tmp_path):
    with requests.Session() as session:
        manifest = ManifestResolver(session, DEFAULT_MANIFEST_URL).resolve(DEFAULT_VERSION, tmp_path)
        index = fetch_asset_index(session, manifest.asset_index, tmp_path / "assets")

    assert manifest.id == DEFAULT_VERSION
    assert manifest.libraries
    assert index.objects
    assert (tmp_path / f"{DEFAULT_VERSION}.json").exists()
    assert (tmp_path / "assets" / "indexes" / f"{manifest.asset_index.id}.json").exists()
