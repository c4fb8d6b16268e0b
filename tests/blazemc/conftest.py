import hashlib
import json
import threading
import time

import pytest
import requests

MANIFEST_URL = "https://meta.test/v1/packages/1.20.4.json"
INDEX_URL = "https://meta.test/v1/packages/indexes/12.json"
CLIENT_URL = "https://meta.test/v1/objects/client.jar"
LIBRARY_BASE = "https://libraries.test"
RESOURCES_URL = "https://resources.test"


def sha1(data):
    return hashlib.sha1(data).hexdigest()


def resource_url(content_hash):
    return f"{RESOURCES_URL}/{content_hash[:2]}/{content_hash}"


def make_response(url, status, body=b""):
    """A real requests.Response with its body already loaded."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.reason = "OK" if status < 400 else "Error"
    response._content = body
    response._content_consumed = True
    return response


class FakeSession:
    """
    Stand-in for requests.Session.

    `routes` maps a URL to bytes (200), an int status code, or an exception to
    raise. Unknown URLs answer 404. Every call is recorded, and the peak
    number of concurrent get() calls is tracked.
    """

    def __init__(self, routes=None, delay=0.0):
        self.routes = dict(routes or {})
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, stream=False, timeout=None, **kwargs):
        with self._lock:
            self.calls.append(url)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            route = self.routes.get(url, 404)
            if isinstance(route, Exception):
                raise route
            if isinstance(route, int):
                return make_response(url, route)
            return make_response(url, 200, route)
        finally:
            with self._lock:
                self.in_flight -= 1

    def calls_to(self, prefix):
        return [url for url in self.calls if url.startswith(prefix)]

    def close(self):
        self.closed = True


class Remote:
    """A fake set of download servers for one version."""

    def __init__(self, assets, libraries=(), client=b"client-jar-bytes", version_id="1.20.4", index_id="12"):
        self.assets = dict(assets)
        self.client = client
        self.version_id = version_id
        self.index_id = index_id
        self.libraries = list(libraries)

        self.index_doc = {
            "objects": {name: {"hash": sha1(data), "size": len(data)} for name, data in self.assets.items()}
        }
        self.index_body = json.dumps(self.index_doc).encode("utf-8")

        library_docs = []
        for lib in self.libraries:
            doc = {
                "name": lib["name"],
                "downloads": {"artifact": {
                    "path": lib["path"],
                    "url": f"{LIBRARY_BASE}/{lib['path']}",
                    "sha1": sha1(lib["data"]),
                    "size": len(lib["data"]),
                }},
            }
            if "rules" in lib:
                doc["rules"] = lib["rules"]
            library_docs.append(doc)

        self.manifest_doc = {
            "id": version_id,
            "type": "release",
            "mainClass": "net.minecraft.client.main.Main",
            "assetIndex": {"id": index_id, "sha1": sha1(self.index_body), "url": INDEX_URL},
            "downloads": {"client": {"url": CLIENT_URL, "sha1": sha1(client), "size": len(client)}},
            "libraries": library_docs,
        }
        self.manifest_body = json.dumps(self.manifest_doc).encode("utf-8")

    def routes(self):
        routes = {
            MANIFEST_URL: self.manifest_body,
            INDEX_URL: self.index_body,
            CLIENT_URL: self.client,
        }
        for data in self.assets.values():
            routes[resource_url(sha1(data))] = data
        for lib in self.libraries:
            routes[f"{LIBRARY_BASE}/{lib['path']}"] = lib["data"]
        return routes

    def session(self, overrides=None, delay=0.0):
        routes = self.routes()
        routes.update(overrides or {})
        return FakeSession(routes, delay=delay)


@pytest.fixture
def remote():
    return Remote(
        assets={
            "minecraft/sounds/a.ogg": b"asset-a",
            "minecraft/sounds/b.ogg": b"asset-b",
            "minecraft/lang/c.json": b"asset-c",
        },
        libraries=[
            {"name": "com.example:core:1.0", "path": "com/example/core/1.0/core-1.0.jar", "data": b"core"},
            {"name": "org.lwjgl:lwjgl:3.3:natives-windows",
             "path": "org/lwjgl/lwjgl/3.3/lwjgl-3.3-natives-windows.jar", "data": b"win-natives",
             "rules": [{"action": "allow", "os": {"name": "windows"}}]},
            {"name": "org.lwjgl:lwjgl:3.3:natives-linux",
             "path": "org/lwjgl/lwjgl/3.3/lwjgl-3.3-natives-linux.jar", "data": b"linux-natives",
             "rules": [{"action": "allow", "os": {"name": "linux"}}]},
        ],
    )


@pytest.fixture
def instance_dir(tmp_path):
    path = tmp_path / "instance"
    path.mkdir()
    return path
