import json

import pytest
import respx
from bitbucket_mcp.core.client import BitbucketApiError, BitbucketClient
from bitbucket_mcp.core.config import Config
from bitbucket_mcp.core.safety import SafetyError
from bitbucket_mcp.core.tools.pull_requests import (
    DIFF_NOTE,
    add_pull_request_comment,
    approve_pull_request,
    create_pull_request,
    decline_pull_request,
    get_pull_request,
    get_pull_request_diff,
    get_pull_request_diffstat,
    list_pull_request_activity,
    list_pull_requests,
    merge_pull_request,
    request_changes_pull_request,
    update_pull_request,
)
from httpx import Response

BASE_URL = "https://api.bitbucket.org/2.0"
PRS_URL = f"{BASE_URL}/repositories/ws/api/pullrequests"


def pr_json(pr_id=7, state="OPEN", **extra):
    payload = {
        "type": "pullrequest",
        "id": pr_id,
        "title": "Add feature",
        "description": "Implements the feature",
        "state": state,
        "author": {"display_name": "Ada", "nickname": "ada"},
        "source": {"branch": {"name": "feature"}},
        "destination": {"branch": {"name": "main"}},
        "comment_count": 2,
        "task_count": 0,
    }
    payload.update(extra)
    return payload


def make_config(**overrides) -> Config:
    values = {
        "email": "test@example.com",
        "api_token": "test-token",
        "default_workspace": "ws",
        "base_url": BASE_URL,
    }
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def client(config):
    return BitbucketClient(config)


@pytest.mark.asyncio
@respx.mock
async def test_list_pull_requests_filters_by_state(client, config):
    route = respx.get(PRS_URL).mock(
        return_value=Response(200, json={"values": [pr_json(state="MERGED")]})
    )

    async with client:
        text = await list_pull_requests(client, config, "api", state="MERGED")

    assert text == "- #7 [MERGED] Add feature (feature → main) by Ada"
    assert route.calls[0].request.url.params["state"] == "MERGED"


@pytest.mark.asyncio
@respx.mock
async def test_list_pull_requests_empty(client, config):
    respx.get(PRS_URL).mock(return_value=Response(200, json={"values": []}))

    async with client:
        text = await list_pull_requests(client, config, "api")

    assert text == "No pull requests found."


@pytest.mark.asyncio
@respx.mock
async def test_get_pull_request_includes_participants(client, config):
    respx.get(f"{PRS_URL}/7").mock(
        return_value=Response(
            200,
            json=pr_json(
                participants=[
                    {
                        "user": {"display_name": "Bob"},
                        "role": "REVIEWER",
                        "approved": True,
                    }
                ],
                reviewers=[{"display_name": "Bob"}],
            ),
        )
    )

    async with client:
        text = await get_pull_request(client, config, "api", 7)

    assert text.startswith("PR #7: Add feature")
    assert "Branch: feature → main" in text
    assert "Participants: Bob (REVIEWER: approved)" in text
    assert "Reviewers: Bob" in text


@pytest.mark.asyncio
@respx.mock
async def test_get_pull_request_not_found(client, config):
    respx.get(f"{PRS_URL}/99").mock(return_value=Response(404, text="not found"))

    async with client:
        with pytest.raises(BitbucketApiError) as exc:
            await get_pull_request(client, config, "api", 99)

    assert exc.value.status_code == 404


@pytest.mark.asyncio
@respx.mock
async def test_create_pull_request_defaults_destination(client, config):
    route = respx.post(PRS_URL).mock(return_value=Response(201, json=pr_json()))

    async with client:
        text = await create_pull_request(
            client,
            config,
            "api",
            title="Add feature",
            source_branch="feature",
            reviewers=["{u-1}"],
            close_source_branch=True,
        )

    assert text.startswith("PR #7: Add feature")
    assert json.loads(route.calls[0].request.content) == {
        "title": "Add feature",
        "source": {"branch": {"name": "feature"}},
        "destination": {"branch": {"name": "main"}},
        "close_source_branch": True,
        "reviewers": [{"uuid": "{u-1}"}],
    }


@pytest.mark.asyncio
@respx.mock
async def test_create_pull_request_readonly(client):
    config = make_config(readonly=True)
    route = respx.post(PRS_URL).mock(return_value=Response(201, json=pr_json()))

    async with client:
        with pytest.raises(SafetyError):
            await create_pull_request(client, config, "api", "t", "feature")

    assert not route.called


@pytest.mark.asyncio
@respx.mock
async def test_get_pull_request_diff_prefixes_note(client, config):
    diff = "diff --git a/x b/x\n+added\n"
    respx.get(f"{PRS_URL}/7/diff").mock(
        return_value=Response(200, text=diff, headers={"Content-Type": "text/plain"})
    )

    async with client:
        text = await get_pull_request_diff(client, config, "api", 7)

    assert text == DIFF_NOTE + diff


@pytest.mark.asyncio
@respx.mock
async def test_get_pull_request_diffstat_follows_pages(client, config):
    def handler(request):
        if request.url.params.get("page") == "2":
            return Response(
                200,
                json={
                    "values": [
                        {
                            "status": "removed",
                            "old": {"path": "old.py"},
                            "lines_removed": 5,
                        }
                    ]
                },
            )
        return Response(
            200,
            json={
                "values": [
                    {
                        "status": "modified",
                        "old": {"path": "app.py"},
                        "new": {"path": "app.py"},
                        "lines_added": 3,
                        "lines_removed": 1,
                    }
                ],
                "next": f"{PRS_URL}/7/diffstat?page=2",
            },
        )

    respx.get(f"{PRS_URL}/7/diffstat").mock(side_effect=handler)

    async with client:
        text = await get_pull_request_diffstat(client, config, "api", 7)

    lines = text.splitlines()
    assert lines[0] == "modified   app.py (+3 -1)"
    assert lines[1] == "removed    old.py (+0 -5)"
    assert lines[-1] == "Total: 2 files changed, +3 -6"


@pytest.mark.asyncio
@respx.mock
async def test_list_pull_request_activity(client, config):
    respx.get(f"{PRS_URL}/7/activity").mock(
        return_value=Response(
            200,
            json={
                "values": [
                    {
                        "approval": {
                            "user": {"display_name": "Bob"},
                            "date": "2024-05-02",
                        }
                    },
                    {
                        "update": {
                            "state": "OPEN",
                            "author": {"display_name": "Ada"},
                            "date": "2024-05-01",
                        }
                    },
                    {
                        "comment": {
                            "id": 11,
                            "content": {"raw": "Looks good"},
                            "user": {"display_name": "Bob"},
                            "created_on": "2024-05-02",
                            "inline": {"path": "app.py", "to": 4},
                        }
                    },
                ]
            },
        )
    )

    async with client:
        text = await list_pull_request_activity(client, config, "api", 7)

    lines = text.splitlines()
    assert lines[0] == "[approved] by Bob at 2024-05-02"
    assert lines[1] == "[update] OPEN by Ada at 2024-05-01"
    assert lines[2] == "[comment] #11 [app.py:4] by Bob at 2024-05-02:"
    assert lines[3] == "  Looks good"


@pytest.mark.asyncio
@respx.mock
async def test_add_inline_reply_comment(client, config):
    route = respx.post(f"{PRS_URL}/7/comments").mock(
        return_value=Response(
            201,
            json={
                "id": 12,
                "content": {"raw": "Fixed"},
                "user": {"display_name": "Ada"},
                "created_on": "2024-05-03",
                "inline": {"path": "app.py", "to": 10},
                "parent": {"id": 11},
            },
        )
    )

    async with client:
        text = await add_pull_request_comment(
            client,
            config,
            "api",
            7,
            "Fixed",
            inline_path="app.py",
            inline_line=10,
            parent_id=11,
        )

    assert text.startswith("#12 [app.py:10] (reply to #11) by Ada")
    assert json.loads(route.calls[0].request.content) == {
        "content": {"raw": "Fixed"},
        "inline": {"path": "app.py", "to": 10},
        "parent": {"id": 11},
    }


@pytest.mark.asyncio
@respx.mock
async def test_approve_and_request_changes(client, config):
    approve = respx.post(f"{PRS_URL}/7/approve").mock(
        return_value=Response(200, json={"approved": True})
    )
    changes = respx.post(f"{PRS_URL}/7/request-changes").mock(
        return_value=Response(200, json={"state": "changes_requested"})
    )

    async with client:
        assert (
            await approve_pull_request(client, config, "api", 7)
            == "Pull request #7 approved."
        )
        assert (
            await request_changes_pull_request(client, config, "api", 7)
            == "Changes requested on pull request #7."
        )

    assert approve.called
    assert changes.called


@pytest.mark.asyncio
@respx.mock
async def test_merge_requires_confirmation(client, config):
    route = respx.post(f"{PRS_URL}/7/merge").mock(
        return_value=Response(200, json=pr_json(state="MERGED"))
    )

    async with client:
        with pytest.raises(SafetyError) as exc:
            await merge_pull_request(client, config, "api", 7)

    assert "merge pull request" in str(exc.value)
    assert not route.called


@pytest.mark.asyncio
@respx.mock
async def test_merge_with_strategy(client, config):
    route = respx.post(f"{PRS_URL}/7/merge").mock(
        return_value=Response(200, json=pr_json(state="MERGED"))
    )

    async with client:
        text = await merge_pull_request(
            client, config, "api", 7, confirm=True, merge_strategy="squash"
        )

    assert "State: MERGED" in text
    assert json.loads(route.calls[0].request.content) == {
        "type": "pullrequest",
        "merge_strategy": "squash",
    }


@pytest.mark.asyncio
async def test_merge_readonly_wins_over_confirmation(client):
    config = make_config(readonly=True)
    async with client:
        with pytest.raises(SafetyError) as exc:
            await merge_pull_request(client, config, "api", 7, confirm=True)
    assert "readonly" in str(exc.value)


@pytest.mark.asyncio
@respx.mock
async def test_merge_checks_repo_allow_list_after_confirmation(client):
    config = make_config(allowed_repos=frozenset({"ws/web"}))
    route = respx.post(f"{PRS_URL}/7/merge").mock(
        return_value=Response(200, json=pr_json())
    )

    async with client:
        with pytest.raises(SafetyError) as exc:
            await merge_pull_request(client, config, "api", 7, confirm=True)

    assert '"ws/api"' in str(exc.value)
    assert not route.called


@pytest.mark.asyncio
@respx.mock
async def test_update_pull_request(client, config):
    route = respx.put(f"{PRS_URL}/7").mock(
        return_value=Response(200, json=pr_json(title="Renamed"))
    )

    async with client:
        text = await update_pull_request(client, config, "api", 7, title="Renamed")

    assert text.startswith("PR #7: Renamed")
    assert json.loads(route.calls[0].request.content) == {"title": "Renamed"}


@pytest.mark.asyncio
async def test_update_pull_request_needs_a_field(client, config):
    async with client:
        with pytest.raises(ValueError):
            await update_pull_request(client, config, "api", 7)


@pytest.mark.asyncio
@respx.mock
async def test_decline_pull_request(client, config):
    route = respx.post(f"{PRS_URL}/7/decline").mock(
        return_value=Response(200, json=pr_json(state="DECLINED"))
    )

    async with client:
        with pytest.raises(SafetyError):
            await decline_pull_request(client, config, "api", 7, confirm=False)
        assert not route.called

        text = await decline_pull_request(client, config, "api", 7, confirm=True)

    assert "State: DECLINED" in text
