import pytest

from blazemc.content_store import ContentStore
from blazemc.controller import install_or_update
from blazemc.errors import IntegrityError, NetworkError, ParseError
from blazemc.launcher_config import config_path

from conftest import (
    CLIENT_URL,
    INDEX_URL,
    LIBRARY_BASE,
    MANIFEST_URL,
    RESOURCES_URL,
    Remote,
    resource_url,
    sha1,
)


def _install(session, instance_dir, platform="linux", **kwargs):
    return install_or_update(
        "1.20.4",
        instance_dir,
        platform,
        session=session,
        manifest_url=MANIFEST_URL,
        resources_url=RESOURCES_URL,
        base_wait_time=0,
        **kwargs,
    )


def _store(instance_dir):
    return ContentStore(instance_dir / "assets" / "objects")


def _snapshot(root):
    return {p: (p.read_bytes(), p.stat().st_mtime_ns) for p in root.rglob("*") if p.is_file()}


def test_fresh_install_populates_instance(remote, instance_dir):
    session = remote.session()

    report = _install(session, instance_dir)

    assert report.ok
    assert report.version_id == "1.20.4"
    assert report.already_present == 0
    # 3 assets, 2 linux-applicable libraries, the client jar
    assert len(report.succeeded) == 6
    assert set(_store(instance_dir)) == {sha1(d) for d in remote.assets.values()}
    libraries = instance_dir / "libraries"
    assert (libraries / "com/example/core/1.0/core-1.0.jar").read_bytes() == b"core"
    assert (libraries / "org/lwjgl/lwjgl/3.3/lwjgl-3.3-natives-linux.jar").exists()
    assert not (libraries / "org/lwjgl/lwjgl/3.3/lwjgl-3.3-natives-windows.jar").exists()
    assert (instance_dir / "client.jar").read_bytes() == remote.client
    assert (instance_dir / "assets" / "indexes" / "12.json").read_bytes() == remote.index_body
    assert (instance_dir.parent / "1.20.4.json").read_bytes() == remote.manifest_body
    assert config_path(instance_dir).exists()


def test_platform_selects_libraries(remote, instance_dir):
    session = remote.session()
    _install(session, instance_dir, platform="windows")

    assert sorted(session.calls_to(LIBRARY_BASE)) == [
        f"{LIBRARY_BASE}/com/example/core/1.0/core-1.0.jar",
        f"{LIBRARY_BASE}/org/lwjgl/lwjgl/3.3/lwjgl-3.3-natives-windows.jar",
    ]


def test_second_run_is_idempotent(remote, instance_dir):
    _install(remote.session(), instance_dir)
    before = _snapshot(instance_dir / "assets" / "objects")

    session = remote.session()
    report = _install(session, instance_dir)

    # only the asset index is fetched again; the manifest comes from the cache
    assert session.calls == [INDEX_URL]
    assert report.results == []
    assert report.already_present == 6
    assert _snapshot(instance_dir / "assets" / "objects") == before


def test_dedup_fetches_only_missing_object(instance_dir):
    remote = Remote(assets={"a": b"A", "b": b"B", "c": b"C"})
    store = _store(instance_dir)
    store.put(sha1(b"A"), b"A")
    store.put(sha1(b"B"), b"B")

    session = remote.session()
    report = _install(session, instance_dir)

    assert report.ok
    assert session.calls_to(RESOURCES_URL) == [resource_url(sha1(b"C"))]
    assert sorted(store) == sorted(sha1(d) for d in (b"A", b"B", b"C"))
    for data in (b"A", b"B", b"C"):
        assert store.path_for(sha1(data)) == instance_dir / "assets" / "objects" / sha1(data)[:2] / sha1(data)


def test_names_sharing_a_hash_download_once(instance_dir):
    remote = Remote(assets={"sounds/x.ogg": b"same", "sounds/copy/x.ogg": b"same"})
    session = remote.session()

    _install(session, instance_dir)

    assert session.calls_to(RESOURCES_URL) == [resource_url(sha1(b"same"))]


def test_isolated_asset_failure(instance_dir):
    remote = Remote(assets={"a": b"A", "b": b"B", "c": b"C"})
    broken = resource_url(sha1(b"B"))
    session = remote.session(overrides={broken: 500})

    report = _install(session, instance_dir)

    asset_results = [r for r in report.results if r.task.addressed]
    assert len([r for r in asset_results if r.ok]) == 2
    failed = [r for r in asset_results if not r.ok]
    assert [r.task.sha1 for r in failed] == [sha1(b"B")]
    assert isinstance(failed[0].error, NetworkError)
    assert not report.ok
    store = _store(instance_dir)
    assert store.has(sha1(b"A")) and store.has(sha1(b"C"))


def test_every_asset_is_stored_or_reported(instance_dir):
    remote = Remote(assets={f"asset/{i}": f"data-{i}".encode() for i in range(10)})
    overrides = {resource_url(sha1(b"data-3")): 500, resource_url(sha1(b"data-7")): 404}
    report = _install(remote.session(overrides=overrides), instance_dir, concurrency=3)

    store = _store(instance_dir)
    failed = {r.task.sha1 for r in report.failed}
    for data in remote.assets.values():
        assert store.has(sha1(data)) or sha1(data) in failed
    assert failed == {sha1(b"data-3"), sha1(b"data-7")}


def test_library_failure_does_not_stop_assets(remote, instance_dir):
    broken = f"{LIBRARY_BASE}/com/example/core/1.0/core-1.0.jar"
    report = _install(remote.session(overrides={broken: 503}), instance_dir)

    assert [r.task.url for r in report.failed] == [broken]
    assert set(_store(instance_dir)) == {sha1(d) for d in remote.assets.values()}
    assert (instance_dir / "client.jar").exists()


def test_manifest_failure_is_fatal(remote, instance_dir):
    session = remote.session(overrides={MANIFEST_URL: 502})

    with pytest.raises(NetworkError):
        _install(session, instance_dir)

    assert session.calls_to(MANIFEST_URL) == session.calls
    assert not (instance_dir / "assets").exists()
    assert not (instance_dir / "libraries").exists()
    assert not (instance_dir / "client.jar").exists()


def test_asset_index_failure_is_fatal(remote, instance_dir):
    session = remote.session(overrides={INDEX_URL: b"{broken"})

    with pytest.raises(ParseError):
        _install(session, instance_dir)

    assert session.calls_to(RESOURCES_URL) == []
    assert session.calls_to(CLIENT_URL) == []
    assert not (instance_dir / "libraries").exists()


def test_injected_session_is_left_open(remote, instance_dir):
    session = remote.session()
    _install(session, instance_dir)
    assert not session.closed


def test_tampered_asset_index_is_fatal(remote, instance_dir):
    session = remote.session(overrides={INDEX_URL: b'{"objects": {}}'})

    with pytest.raises(IntegrityError):
        _install(session, instance_dir)

    assert session.calls_to(RESOURCES_URL) == []
    assert not (instance_dir / "assets" / "indexes").exists()
