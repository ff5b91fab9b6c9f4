import pytest
import respx
from bitbucket_mcp.core.client import (
    BitbucketApiError,
    BitbucketClient,
    BitbucketModelValidationError,
)
from bitbucket_mcp.core.config import Config
from bitbucket_mcp.core.models import Workspace
from httpx import Response

BASE_URL = "https://api.bitbucket.org/2.0"


@pytest.fixture
def client():
    return BitbucketClient(
        Config(email="test@example.com", api_token="test-token", base_url=BASE_URL)
    )


def _page(values, next_url=None, page=1):
    payload = {"values": values, "page": page, "size": 4, "pagelen": len(values)}
    if next_url:
        payload["next"] = next_url
    return payload


@pytest.mark.asyncio
@respx.mock
async def test_follows_next_links_in_order(client):
    def handler(request):
        if request.url.params.get("page") == "2":
            return Response(200, json=_page([{"id": 3}, {"id": 4}], page=2))
        return Response(
            200, json=_page([{"id": 1}, {"id": 2}], next_url=f"{BASE_URL}/items?page=2")
        )

    route = respx.get(f"{BASE_URL}/items").mock(side_effect=handler)

    async with client:
        items = await client.paginate_all("/items")

    assert items == [{"id": 1}, {"id": 2}, {"id": 3}, {"id": 4}]
    assert route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_initial_params_only_sent_on_first_page(client):
    def handler(request):
        if request.url.params.get("page") == "2":
            return Response(200, json=_page([{"id": 2}], page=2))
        return Response(
            200,
            json=_page([{"id": 1}], next_url=f"{BASE_URL}/items?role=owner&page=2"),
        )

    route = respx.get(f"{BASE_URL}/items").mock(side_effect=handler)

    async with client:
        await client.paginate_all("/items", {"role": "owner", "q": None})

    first, second = (call.request.url for call in route.calls)
    assert dict(first.params) == {"role": "owner"}
    assert str(second) == f"{BASE_URL}/items?role=owner&page=2"


@pytest.mark.asyncio
@respx.mock
async def test_max_pages_bounds_self_referencing_next(client):
    route = respx.get(f"{BASE_URL}/infinite").mock(
        return_value=Response(
            200, json=_page([{"id": 1}], next_url=f"{BASE_URL}/infinite")
        )
    )

    async with client:
        items = await client.paginate_all("/infinite", None, 3)

    assert len(items) == 3
    assert route.call_count == 3


@pytest.mark.asyncio
@respx.mock
async def test_default_max_pages_is_ten(client):
    route = respx.get(f"{BASE_URL}/infinite").mock(
        return_value=Response(
            200, json=_page([{"id": 1}], next_url=f"{BASE_URL}/infinite")
        )
    )

    async with client:
        items = await client.paginate_all("/infinite")

    assert len(items) == 10
    assert route.call_count == 10


@pytest.mark.asyncio
@respx.mock
async def test_single_page_without_next(client):
    respx.get(f"{BASE_URL}/single-page").mock(
        return_value=Response(200, json=_page([{"id": 1}]))
    )

    async with client:
        items = await client.paginate_all("/single-page")

    assert items == [{"id": 1}]


@pytest.mark.asyncio
@respx.mock
async def test_next_link_on_another_host_is_followed_verbatim(client):
    respx.get(f"{BASE_URL}/items").mock(
        return_value=Response(
            200, json=_page([{"id": 1}], next_url="https://api.other.org/v3/items?c=x")
        )
    )
    other = respx.get("https://api.other.org/v3/items").mock(
        return_value=Response(200, json=_page([{"id": 2}]))
    )

    async with client:
        items = await client.paginate_all("/items")

    assert items == [{"id": 1}, {"id": 2}]
    assert other.calls[0].request.url.params["c"] == "x"


@pytest.mark.asyncio
@respx.mock
async def test_failing_page_aborts_aggregation(client):
    respx.get(f"{BASE_URL}/items").mock(
        return_value=Response(
            200, json=_page([{"id": 1}], next_url=f"{BASE_URL}/broken")
        )
    )
    respx.get(f"{BASE_URL}/broken").mock(return_value=Response(500, text="oops"))

    async with client:
        with pytest.raises(BitbucketApiError) as exc:
            await client.paginate_all("/items")

    assert exc.value.status_code == 500


@pytest.mark.asyncio
@respx.mock
async def test_items_validated_against_model(client):
    respx.get(f"{BASE_URL}/workspaces").mock(
        return_value=Response(
            200, json=_page([{"slug": "team", "name": "Team", "type": "workspace"}])
        )
    )

    async with client:
        items = await client.paginate_all("/workspaces", model=Workspace)

    assert items == [Workspace(slug="team", name="Team", type="workspace")]


@pytest.mark.asyncio
@respx.mock
async def test_non_envelope_payload_raises(client):
    respx.get(f"{BASE_URL}/items").mock(
        return_value=Response(200, json={"unexpected": True})
    )

    async with client:
        with pytest.raises(BitbucketModelValidationError):
            await client.paginate_all("/items")


@pytest.mark.asyncio
async def test_max_pages_must_be_positive(client):
    async with client:
        with pytest.raises(ValueError):
            await client.paginate_all("/items", max_pages=0)
