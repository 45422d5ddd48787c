import pytest
import requests

from pkgcache.adapters.feed_http import NuGetFeedFetcher, destination_file_name, is_local_feed
from pkgcache.kernel.artifacts import FeedReference, PackageIdentity, RetryBudget
from pkgcache.kernel.errors import FetchError, MalformedArtifactError
from tests.kernel.mocks import nupkg_bytes, write_nupkg

V2_FEED = "https://feed.example.com/api/v2"
V2_URL = "https://feed.example.com/api/v2/package/Acme.Web/1.0.0"
V3_INDEX = "https://api.example.com/v3/index.json"

# --- Fixtures ---

@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fetcher(settings, sleeps):
    return NuGetFeedFetcher(settings, sleep=sleeps.append)


@pytest.fixture
def identity():
    return PackageIdentity("Acme.Web", "1.0.0")


@pytest.fixture
def destination(cache_root):
    return cache_root / "feeds-1"

# --- Helpers ---

def test_destination_file_names_are_unique(identity):
    first, second = destination_file_name(identity), destination_file_name(identity)
    assert first != second
    assert first.startswith("Acme.Web.1.0.0_")
    assert first.endswith(".nupkg")


@pytest.mark.parametrize("uri, expected", [
    ("https://feed.example.com/api/v2", False),
    ("http://feed.example.com/v3/index.json", False),
    ("file:///srv/packages", True),
    ("/srv/packages", True),
    ("C:\\packages", True),
])
def test_is_local_feed(uri, expected):
    assert is_local_feed(uri) is expected

# --- V2 feed ---

def test_fetch_from_v2_feed(fetcher, identity, destination, requests_mock):
    content = nupkg_bytes("Acme.Web", "1.0.0")
    requests_mock.get(V2_URL, content=content)

    cached = fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(3, 0))

    assert cached.file_path.parent == destination.resolve()
    assert cached.file_path.name.startswith("Acme.Web.1.0.0_")
    assert cached.file_path.suffix == ".nupkg"
    assert cached.file_path.read_bytes() == content
    assert cached.reader.identity_id == "Acme.Web"
    assert list(destination.glob("*.downloading")) == []


def test_fetch_sends_feed_credentials(fetcher, identity, destination, requests_mock):
    requests_mock.get(V2_URL, content=nupkg_bytes("Acme.Web", "1.0.0"))
    fetcher.fetch(identity, FeedReference(V2_FEED, credentials=("deploy", "s3cret")), destination, RetryBudget(1, 0))
    assert requests_mock.last_request.headers["Authorization"].startswith("Basic ")


def test_fetch_never_overwrites_existing_entries(fetcher, identity, destination, requests_mock):
    requests_mock.get(V2_URL, content=nupkg_bytes("Acme.Web", "1.0.0"))
    first = fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(1, 0))
    second = fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(1, 0))
    assert first.file_path != second.file_path
    assert first.file_path.exists() and second.file_path.exists()


def test_fetch_retries_transient_failures_then_succeeds(fetcher, identity, destination, requests_mock, sleeps):
    requests_mock.get(V2_URL, [
        {"exc": requests.exceptions.ConnectionError("connection reset")},
        {"status_code": 503},
        {"content": nupkg_bytes("Acme.Web", "1.0.0")},
    ])

    cached = fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(max_attempts=3, backoff_seconds=2.5))

    assert cached.file_path.exists()
    assert requests_mock.call_count == 3
    assert sleeps == [2.5, 2.5]


def test_fetch_gives_up_after_budget(fetcher, identity, destination, requests_mock, sleeps):
    requests_mock.get(V2_URL, exc=requests.exceptions.ConnectTimeout("timed out"))

    with pytest.raises(FetchError, match="after 4 attempt") as excinfo:
        fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(max_attempts=4, backoff_seconds=1))

    assert requests_mock.call_count == 4
    assert sleeps == [1, 1, 1]
    assert excinfo.value.context["package_id"] == "Acme.Web"
    assert excinfo.value.context["feed"] == V2_FEED
    assert list(destination.glob("*.nupkg")) == []


def test_fetch_does_not_retry_not_found(fetcher, identity, destination, requests_mock, sleeps):
    requests_mock.get(V2_URL, status_code=404)

    with pytest.raises(FetchError, match="HTTP 404"):
        fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(max_attempts=5, backoff_seconds=1))

    assert requests_mock.call_count == 1
    assert sleeps == []


def test_fetch_of_invalid_package_is_fatal(fetcher, identity, destination, requests_mock, sleeps):
    requests_mock.get(V2_URL, content=b"<html>not a package</html>")

    with pytest.raises(MalformedArtifactError) as excinfo:
        fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(max_attempts=3, backoff_seconds=1))

    assert requests_mock.call_count == 1
    assert excinfo.value.context["path"].endswith(".nupkg")


def test_fetch_write_failure_is_fatal_with_context(fetcher, identity, destination, requests_mock, sleeps, mocker):
    requests_mock.get(V2_URL, content=nupkg_bytes("Acme.Web", "1.0.0"))
    mocker.patch("pkgcache.adapters.feed_http.open", side_effect=PermissionError(13, "Permission denied"), create=True)

    with pytest.raises(FetchError, match="Unable to write package") as excinfo:
        fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(max_attempts=3, backoff_seconds=1))

    assert requests_mock.call_count == 1
    assert sleeps == []
    assert excinfo.value.context["version"] == "1.0.0"
    assert excinfo.value.context["path"].endswith(".nupkg.downloading")


def test_fetch_promotion_failure_is_fatal_with_context(fetcher, identity, destination, requests_mock, mocker):
    requests_mock.get(V2_URL, content=nupkg_bytes("Acme.Web", "1.0.0"))
    mocker.patch("pkgcache.adapters.feed_http.os.replace", side_effect=OSError(18, "Invalid cross-device link"))

    with pytest.raises(FetchError, match="Unable to promote") as excinfo:
        fetcher.fetch(identity, FeedReference(V2_FEED), destination, RetryBudget(1, 0))

    assert excinfo.value.context["package_id"] == "Acme.Web"
    assert excinfo.value.context["feed"] == V2_FEED
    assert excinfo.value.context["path"].endswith(".nupkg")
    assert list(destination.glob("*.nupkg")) == []

# --- V3 feed ---

def test_fetch_from_v3_feed_uses_package_base_address(fetcher, destination, requests_mock):
    requests_mock.get(V3_INDEX, json={
        "version": "3.0.0",
        "resources": [
            {"@id": "https://api.example.com/v3/query", "@type": "SearchQueryService"},
            {"@id": "https://cdn.example.com/flat/", "@type": "PackageBaseAddress/3.0.0"},
        ],
    })
    download = requests_mock.get(
        "https://cdn.example.com/flat/acme.web/1.0.0-beta/acme.web.1.0.0-beta.nupkg",
        content=nupkg_bytes("Acme.Web", "1.0.0-Beta"),
    )

    identity = PackageIdentity("Acme.Web", "1.0.0-Beta")
    cached = fetcher.fetch(identity, FeedReference(V3_INDEX), destination, RetryBudget(1, 0))

    assert download.called_once
    assert cached.reader.version_string == "1.0.0-Beta"


def test_v3_index_without_base_address_is_fatal(fetcher, identity, destination, requests_mock):
    requests_mock.get(V3_INDEX, json={"version": "3.0.0", "resources": ["flat", {"@type": 3}]})
    with pytest.raises(FetchError, match="PackageBaseAddress"):
        fetcher.fetch(identity, FeedReference(V3_INDEX), destination, RetryBudget(3, 0))


@pytest.mark.parametrize("index", [[], "index", {"resources": {"@id": "https://cdn.example.com/flat/"}}])
def test_v3_index_with_unexpected_shape_is_fatal(fetcher, identity, destination, requests_mock, sleeps, index):
    requests_mock.get(V3_INDEX, json=index)
    with pytest.raises(FetchError, match="service index is not valid"):
        fetcher.fetch(identity, FeedReference(V3_INDEX), destination, RetryBudget(3, 0))
    assert requests_mock.call_count == 1
    assert sleeps == []

# --- Local folder feed ---

def test_fetch_from_local_folder(fetcher, identity, destination, tmp_path):
    feed_dir = tmp_path / "feed"
    source = write_nupkg(feed_dir, "acme.web.1.0.0.nupkg", "Acme.Web", "1.0.0")

    cached = fetcher.fetch(identity, FeedReference(feed_dir.as_uri()), destination, RetryBudget(1, 0))

    assert cached.file_path.read_bytes() == source.read_bytes()
    assert source.exists()


def test_fetch_from_local_folder_missing_package(fetcher, identity, destination, tmp_path):
    (tmp_path / "feed").mkdir()
    with pytest.raises(FetchError, match="not found in the local feed"):
        fetcher.fetch(identity, FeedReference(str(tmp_path / "feed")), destination, RetryBudget(3, 0))
