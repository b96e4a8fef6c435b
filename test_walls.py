"""
Tests for the wall listing, creation and detail routes.

Tests cover:
- GET / lists every wall
- GET /walls/new shows a blank form
- POST /walls creates a wall or re-renders the form
- GET /walls/{id} shows a wall or returns 404
"""

import pytest

from wallboard.utils import utcnow


def create_wall(client, follow_redirects: bool = False, **fields):
    """Helper to submit the creation form with wall[...] fields."""
    data = {f"wall[{name}]": value for name, value in fields.items()}
    return client.post("/walls", data=data, follow_redirects=follow_redirects)


@pytest.fixture
def valid_wall() -> dict:
    return {"created_by": "alice", "title": "Test", "description": "desc"}


class TestListWalls:
    """Test GET /."""

    def test_empty_database(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "No walls yet." in response.text

    def test_lists_every_wall(self, client):
        create_wall(client, created_by="alice", title="Groceries")
        create_wall(client, created_by="bob", title="Chores")

        response = client.get("/")

        assert response.status_code == 200
        assert "Groceries" in response.text
        assert "Chores" in response.text
        assert 'href="/walls/1"' in response.text
        assert 'href="/walls/2"' in response.text


class TestNewWall:
    """Test GET /walls/new."""

    def test_blank_form(self, client):
        response = client.get("/walls/new")

        assert response.status_code == 200
        for field in ("created_by", "title", "description", "likes"):
            assert f'name="wall[{field}]"' in response.text
        assert 'class="errors"' not in response.text

    def test_does_not_persist(self, client, store):
        client.get("/walls/new")

        assert store.list_all() == []


class TestCreateWall:
    """Test POST /walls."""

    def test_redirects_home(self, client, valid_wall):
        response = create_wall(client, **valid_wall)

        assert response.status_code == 303
        assert response.headers["location"] == "/"

    def test_listed_exactly_once_with_server_timestamp(self, client, store, valid_wall):
        before = utcnow()
        create_wall(client, **valid_wall)

        walls = store.list_all()
        assert len(walls) == 1
        assert walls[0].title == "Test"
        assert walls[0].created_at is not None
        assert walls[0].created_at >= before

    def test_round_trip(self, client, store):
        create_wall(client, created_by="alice", title="Test", description="desc", likes="4")

        [listed] = store.list_all()
        fetched = store.get_by_id(listed.id)

        assert fetched == listed
        assert fetched.created_by == "alice"
        assert fetched.title == "Test"
        assert fetched.description == "desc"
        assert fetched.likes == 4

    def test_likes_default_to_zero(self, client, store, valid_wall):
        create_wall(client, **valid_wall)

        assert store.list_all()[0].likes == 0

    def test_blank_likes_default_to_zero(self, client, store, valid_wall):
        create_wall(client, likes="", **valid_wall)

        assert store.list_all()[0].likes == 0

    def test_client_created_at_ignored(self, client, store, valid_wall):
        before = utcnow()
        create_wall(client, created_at="1999-01-01T00:00:00", **valid_wall)

        assert store.list_all()[0].created_at >= before

    def test_client_id_ignored(self, client, store, valid_wall):
        create_wall(client, id="42", **valid_wall)

        assert [wall.id for wall in store.list_all()] == [1]

    def test_follow_redirect_shows_new_wall(self, client, valid_wall):
        response = create_wall(client, follow_redirects=True, **valid_wall)

        assert response.status_code == 200
        assert "Test" in response.text


class TestCreateWallRejected:
    """Test POST /walls with input that cannot be saved."""

    def test_missing_title(self, client, store):
        response = create_wall(client, created_by="alice", description="kept")

        assert response.status_code == 200
        assert 'class="errors"' in response.text
        assert 'value="alice"' in response.text
        assert "kept" in response.text
        assert store.list_all() == []

    def test_missing_created_by(self, client, store):
        response = create_wall(client, title="Test")

        assert response.status_code == 200
        assert 'value="Test"' in response.text
        assert store.list_all() == []

    def test_blank_title(self, client, store):
        response = create_wall(client, created_by="alice", title="   ")

        assert response.status_code == 200
        assert store.list_all() == []

    def test_title_too_long(self, client, store):
        response = create_wall(client, created_by="alice", title="x" * 256)

        assert response.status_code == 200
        assert store.list_all() == []

    def test_non_integer_likes(self, client, store):
        response = create_wall(client, created_by="alice", title="Test", likes="lots")

        assert response.status_code == 200
        assert 'value="lots"' in response.text
        assert store.list_all() == []

    def test_negative_likes(self, client, store):
        response = create_wall(client, created_by="alice", title="Test", likes="-1")

        assert response.status_code == 200
        assert store.list_all() == []

    def test_likes_beyond_integer_column(self, client, store):
        response = create_wall(client, created_by="alice", title="Test", likes=str(2**63))

        assert response.status_code == 200
        assert 'class="errors"' in response.text
        assert store.list_all() == []

    def test_likes_just_beyond_32_bits(self, client, store):
        response = create_wall(client, created_by="alice", title="Test", likes=str(2**31))

        assert response.status_code == 200
        assert store.list_all() == []

    def test_largest_likes_accepted(self, client, store):
        response = create_wall(client, created_by="alice", title="Test", likes=str(2**31 - 1))

        assert response.status_code == 303
        assert store.list_all()[0].likes == 2**31 - 1

    def test_rejection_does_not_consume_an_id(self, client, store, valid_wall):
        create_wall(client, created_by="alice")
        create_wall(client, **valid_wall)

        assert [wall.id for wall in store.list_all()] == [1]

    def test_no_wall_group(self, client, store):
        response = client.post("/walls", data={"title": "Test"}, follow_redirects=False)

        assert response.status_code == 200
        assert store.list_all() == []


class TestShowWall:
    """Test GET /walls/{id}."""

    def test_show(self, client, valid_wall):
        create_wall(client, **valid_wall)

        response = client.get("/walls/1")

        assert response.status_code == 200
        assert "<h1>Test</h1>" in response.text
        assert "Created by alice" in response.text
        assert "desc" in response.text
        assert 'name="_method" value="DELETE"' in response.text

    def test_not_found(self, client):
        response = client.get("/walls/999")

        assert response.status_code == 404
        assert "Wall not found" in response.text

    def test_not_found_beyond_last_id(self, client, valid_wall):
        create_wall(client, **valid_wall)

        response = client.get("/walls/2")

        assert response.status_code == 404

    def test_non_integer_id(self, client):
        response = client.get("/walls/abc")

        assert response.status_code == 422
