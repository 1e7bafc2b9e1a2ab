"""
Tests for board and post HTTP endpoints

These tests verify:
- GET /boards and GET /boards/{bo_table}
- Post list/search/view with prev/next links
- Post create, reply, update, delete and vote
- Error envelopes: NOT_FOUND, VALIDATION_ERROR, REPLY_LIMIT_EXCEEDED, HAS_REPLIES
- Write throttling through the full application
- Request events are logged by the route handlers
"""

from unittest.mock import Mock

from board_api.api.routes import writes as writes_routes

WRITES = "/boards/free/writes"


def _create(client, subject="Hello", content="World", **extra):
    body = {"wr_subject": subject, "wr_content": content}
    body.update(extra)
    response = client.post(WRITES, json=body)
    assert response.status_code == 201, response.text
    return response.json()['data']['wr_id']


def _reply(client, wr_id, subject="Re"):
    return client.post(f"{WRITES}/{wr_id}/replies", json={"wr_subject": subject, "wr_content": "reply"})


class TestBoardEndpoints:

    def test_list_boards(self, test_client):
        response = test_client.get("/boards")

        assert response.status_code == 200
        body = response.json()
        assert [board['bo_table'] for board in body['data']] == ["free", "qa"]
        assert body['meta']['total'] == 2

    def test_get_board(self, test_client):
        response = test_client.get("/boards/qa")

        assert response.status_code == 200
        data = response.json()['data']
        assert data['bo_reply_order'] == 0
        assert data['categories'] == ["General", "Bug", "Feature"]

    def test_unknown_board(self, test_client):
        response = test_client.get("/boards/nope/writes")

        assert response.status_code == 404
        assert response.json()['error']['code'] == "NOT_FOUND"

    def test_popular_keywords(self, test_client):
        _create(test_client, "Python tips")
        test_client.get(WRITES, params={"stx": "python"})

        response = test_client.get("/popular-keywords")

        assert response.status_code == 200
        assert [row['pp_word'] for row in response.json()['data']] == ["python"]


class TestCreatePost:

    def test_create_returns_201_and_id(self, test_client):
        response = test_client.post(WRITES, json={"wr_subject": "Hello", "wr_content": "World"})

        assert response.status_code == 201
        assert response.json()['data']['wr_id'] == 1

    def test_missing_subject_is_validation_error(self, test_client):
        response = test_client.post(WRITES, json={"wr_content": "World"})

        assert response.status_code == 422
        assert response.json()['error']['code'] == "VALIDATION_ERROR"

    def test_malformed_json_is_validation_error(self, test_client):
        response = test_client.post(
            WRITES, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 422
        assert response.json()['error']['code'] == "VALIDATION_ERROR"

    def test_invalid_category(self, test_client):
        response = test_client.post(
            "/boards/qa/writes", json={"wr_subject": "q", "wr_content": "c", "ca_name": "Nope"}
        )

        assert response.status_code == 422

    def test_password_is_never_returned(self, test_client):
        wr_id = _create(test_client, wr_password="hunter2")

        data = test_client.get(f"{WRITES}/{wr_id}").json()['data']

        assert 'wr_password' not in data['write']
        assert 'wr_ip' not in data['write']


class TestListPosts:

    def test_list_in_thread_order(self, test_client):
        first = _create(test_client, "first")
        second = _create(test_client, "second")
        reply = _reply(test_client, first).json()['data']['wr_id']

        response = test_client.get(WRITES)

        assert response.status_code == 200
        data = response.json()['data']
        assert [w['wr_id'] for w in data['writes']] == [second, first, reply]
        assert data['total_count'] == 3
        assert response.json()['meta']['total'] == 3

    def test_search(self, test_client):
        _create(test_client, "Python tips")
        _create(test_client, "Rust tips")

        data = test_client.get(WRITES, params={"stx": "python", "sfl": "wr_subject"}).json()['data']

        assert [w['wr_subject'] for w in data['writes']] == ["Python tips"]
        assert data['spt'] == -2
        assert data['prev_spt'] == 0
        assert data['next_spt'] == 0

    def test_sort_by_alias(self, test_client):
        old = _create(test_client, "old")
        new = _create(test_client, "new")
        test_client.post(f"{WRITES}/{old}/good")

        data = test_client.get(WRITES, params={"sst": "most_recommended"}).json()['data']

        assert [w['wr_id'] for w in data['writes']] == [old, new]

    def test_invalid_page(self, test_client):
        response = test_client.get(WRITES, params={"page": 0})

        assert response.status_code == 422
        assert response.json()['error']['code'] == "VALIDATION_ERROR"

    def test_positive_spt_is_rejected(self, test_client):
        assert test_client.get(WRITES, params={"spt": 5}).status_code == 422

    def test_page_size_from_site_config(self, test_client):
        db = test_client.app.state.db
        db.execute("UPDATE site_config SET value = '2' WHERE key = 'page_rows'")
        db.commit()
        for subject in ("one", "two", "three"):
            _create(test_client, subject)

        data = test_client.get(WRITES).json()['data']

        assert data['per_page'] == 2
        assert len(data['writes']) == 2
        assert data['total_pages'] == 2

    def test_board_listing_uses_site_config(self, test_client):
        db = test_client.app.state.db
        db.execute("UPDATE site_config SET value = '500' WHERE key = 'search_part'")
        db.commit()

        boards = {board['bo_table']: board for board in test_client.get("/boards").json()['data']}

        assert boards['free']['bo_search_part'] == 500
        assert boards['qa']['bo_search_part'] == 10000, "Explicit board value wins"


class TestViewPost:

    def test_view_with_neighbors(self, test_client):
        oldest = _create(test_client, "oldest")
        middle = _create(test_client, "middle")
        newest = _create(test_client, "newest")

        data = test_client.get(f"{WRITES}/{middle}").json()['data']

        assert data['write']['wr_subject'] == "middle"
        assert data['prev']['wr_id'] == newest
        assert data['next']['wr_id'] == oldest
        assert data['prev']['href'].endswith(f"/boards/free/writes/{newest}")
        assert data['comments'] == []

    def test_neighbor_links_keep_search(self, test_client):
        _create(test_client, "python old")
        _create(test_client, "rust")
        new = _create(test_client, "python new")

        data = test_client.get(f"{WRITES}/{new}", params={"stx": "python"}).json()['data']

        assert data['next']['wr_subject'] == "python old"
        assert data['next']['href'].endswith("?stx=python")
        assert data['prev'] is None

    def test_reply_view_has_thread_root(self, test_client):
        root = _create(test_client, "root")
        reply = _reply(test_client, root).json()['data']['wr_id']

        data = test_client.get(f"{WRITES}/{reply}").json()['data']

        assert data['thread_root']['wr_id'] == root

    def test_missing_post(self, test_client):
        response = test_client.get(f"{WRITES}/999")

        assert response.status_code == 404
        assert response.json()['error']['code'] == "NOT_FOUND"


class TestReplies:

    def test_reply_paths(self, test_client):
        root = _create(test_client)
        first = _reply(test_client, root)
        second = _reply(test_client, root)

        assert first.status_code == 201
        reply_paths = [
            test_client.get(f"{WRITES}/{r.json()['data']['wr_id']}").json()['data']['write']['wr_reply']
            for r in (first, second)
        ]
        assert reply_paths == ["A", "B"]

    def test_reply_to_missing_post(self, test_client):
        assert _reply(test_client, 999).status_code == 404

    def test_reply_level_limit(self, test_client):
        root = _create(test_client)
        for _ in range(26):
            assert _reply(test_client, root).status_code == 201
        total_before = test_client.get(WRITES).json()['data']['total_count']

        response = _reply(test_client, root)

        assert response.status_code == 400
        assert response.json()['error']['code'] == "REPLY_LIMIT_EXCEEDED"
        assert test_client.get(WRITES).json()['data']['total_count'] == total_before


class TestUpdateDeleteVote:

    def test_update_merges(self, test_client):
        wr_id = _create(test_client, "old", "content stays")

        response = test_client.put(f"{WRITES}/{wr_id}", json={"wr_subject": "new"})
        write = test_client.get(f"{WRITES}/{wr_id}").json()['data']['write']

        assert response.status_code == 200
        assert write['wr_subject'] == "new"
        assert write['wr_content'] == "content stays"

    def test_delete(self, test_client):
        wr_id = _create(test_client)

        response = test_client.delete(f"{WRITES}/{wr_id}")

        assert response.status_code == 200
        assert test_client.get(f"{WRITES}/{wr_id}").status_code == 404

    def test_delete_with_replies_is_refused(self, test_client):
        root = _create(test_client)
        _reply(test_client, root)

        response = test_client.delete(f"{WRITES}/{root}")

        assert response.status_code == 409
        assert response.json()['error']['code'] == "HAS_REPLIES"

    def test_vote(self, test_client):
        wr_id = _create(test_client)

        test_client.post(f"{WRITES}/{wr_id}/good")
        response = test_client.post(f"{WRITES}/{wr_id}/nogood")

        assert response.status_code == 200
        assert response.json()['data'] == {'wr_good': 1, 'wr_nogood': 1}

    def test_invalid_vote_type(self, test_client):
        wr_id = _create(test_client)

        response = test_client.post(f"{WRITES}/{wr_id}/meh")

        assert response.status_code == 422
        assert response.json()['error']['code'] == "VALIDATION_ERROR"


class TestThrottledWrites:

    def test_create_requires_token(self, throttled_client):
        response = throttled_client.post(WRITES, json={"wr_subject": "a", "wr_content": "b"})

        assert response.status_code == 400
        assert response.json()['error']['code'] == "BAD_REQUEST"

    def test_second_create_is_too_frequent(self, throttled_client):
        headers = {"Authorization": "Bearer abc"}
        body = {"wr_subject": "a", "wr_content": "b"}

        assert throttled_client.post(WRITES, json=body, headers=headers).status_code == 201
        response = throttled_client.post(WRITES, json=body, headers=headers)

        assert response.status_code == 409
        assert response.json()['error']['code'] == "TOO_FREQUENT"

    def test_rejected_create_does_not_throttle(self, throttled_client):
        headers = {"Authorization": "Bearer abc"}

        assert throttled_client.post(WRITES, json={"wr_content": "b"}, headers=headers).status_code == 422
        body = {"wr_subject": "a", "wr_content": "b"}
        assert throttled_client.post(WRITES, json=body, headers=headers).status_code == 201

    def test_reads_are_not_throttled(self, throttled_client):
        assert throttled_client.get(WRITES).status_code == 200

    def test_admin_is_throttled_without_member_layer(self, throttled_client):
        headers = {"Authorization": "Bearer admin-token", "X-Member": "admin"}
        body = {"wr_subject": "a", "wr_content": "b"}

        assert throttled_client.post(WRITES, json=body, headers=headers).status_code == 201
        assert throttled_client.post(WRITES, json=body, headers=headers).status_code == 409, \
            "No authentication layer sets request.state.member in the application"


class TestRequestLogging:
    """Route handlers log one event per request with the board and ids."""

    def _events(self, logger):
        return [call.args[0] for call in logger.info.call_args_list]

    def test_create_and_list_are_logged(self, test_client, monkeypatch):
        logger = Mock()
        monkeypatch.setattr(writes_routes, "logger", logger)

        wr_id = _create(test_client, "logged")
        test_client.get(WRITES)

        assert self._events(logger) == ["create_write_response", "list_writes_request"]
        logger.info.assert_any_call("create_write_response", bo_table="free", wr_id=wr_id)

    def test_vote_logs_counters(self, test_client, monkeypatch):
        wr_id = _create(test_client)
        logger = Mock()
        monkeypatch.setattr(writes_routes, "logger", logger)

        test_client.post(f"{WRITES}/{wr_id}/nogood")

        logger.info.assert_called_once_with(
            "vote_write_response", bo_table="free", wr_id=wr_id, good_type="nogood", wr_good=0, wr_nogood=1
        )
