"""Test the HTTP surface: cookie sessions, auth gate and forum endpoints."""

from httpx import AsyncClient

from agora.core.config import settings

API = settings.api_v1_prefix


async def _signup(client: AsyncClient, username: str, password: str = "secret1") -> int:
    email = f"{username}@example.com"
    response = await client.post(
        f"{API}/auth/register",
        json={"email": email, "username": username, "password": password},
    )
    assert response.status_code == 201
    user_id = response.json()["id"]

    response = await client.post(
        f"{API}/auth/login", json={"email": email, "password": password}
    )
    assert response.status_code == 200
    return user_id


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] is True


async def test_login_sets_session_cookie(client):
    await client.post(
        f"{API}/auth/register",
        json={"email": "a@x.com", "username": "alice", "password": "secret1"},
    )

    response = await client.post(
        f"{API}/auth/login", json={"email": "a@x.com", "password": "secret1"}
    )

    assert response.status_code == 200
    cookie = response.headers["set-cookie"].lower()
    assert cookie.startswith(f"{settings.session_cookie_name}=")
    assert "httponly" in cookie
    assert "max-age=86400" in cookie
    assert "path=/" in cookie
    assert "samesite=lax" in cookie

    me = await client.get(f"{API}/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "alice"


async def test_login_with_bad_credentials(client):
    await _signup(client, "alice")
    client.cookies.clear()

    response = await client.post(
        f"{API}/auth/login", json={"email": "alice@example.com", "password": "nope-nope"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


async def test_register_conflicts(client):
    await _signup(client, "alice")

    response = await client.post(
        f"{API}/auth/register",
        json={"email": "alice@example.com", "username": "other", "password": "secret1"},
    )
    assert response.status_code == 409

    response = await client.post(
        f"{API}/auth/register",
        json={"email": "other@example.com", "username": "alice", "password": "secret1"},
    )
    assert response.status_code == 409


async def test_mutations_require_login(client):
    response = await client.post(
        f"{API}/forum/posts", json={"title": "Hello", "content": "World"}
    )
    assert response.status_code == 401

    response = await client.post(f"{API}/forum/posts/1/reaction", json={"value": 1})
    assert response.status_code == 401

    response = await client.get(f"{API}/forum/posts", params={"mine": True})
    assert response.status_code == 401

    # Reading stays public
    response = await client.get(f"{API}/forum/posts")
    assert response.status_code == 200
    assert response.json()["items"] == []


async def test_logout_revokes_session(client):
    await _signup(client, "alice")
    token = client.cookies.get(settings.session_cookie_name)

    response = await client.post(f"{API}/auth/logout")
    assert response.status_code == 200
    assert client.cookies.get(settings.session_cookie_name) is None

    # The old token is dead server-side too
    stale = {"Cookie": f"{settings.session_cookie_name}={token}"}
    assert (await client.get(f"{API}/auth/me", headers=stale)).status_code == 401


async def test_post_lifecycle(client):
    await _signup(client, "alice")

    response = await client.post(
        f"{API}/forum/posts",
        json={"title": "Hello", "content": "World", "categories": ["General"]},
    )
    assert response.status_code == 201
    post_id = response.json()["id"]
    assert response.json()["categories"] == ["General"]

    response = await client.post(
        f"{API}/forum/posts/{post_id}/comments", json={"content": "first"}
    )
    assert response.status_code == 201

    response = await client.post(f"{API}/forum/posts/{post_id}/reaction", json={"value": 1})
    assert response.json() == {"reaction": 1, "likes": 1, "dislikes": 0}

    response = await client.post(f"{API}/forum/posts/{post_id}/reaction", json={"value": 5})
    assert response.status_code == 400

    response = await client.get(f"{API}/forum/posts/{post_id}")
    body = response.json()
    assert body["author"]["username"] == "alice"
    assert body["user_liked"] is True
    assert body["comment_count"] == 1
    assert [c["content"] for c in body["comments"]] == ["first"]

    response = await client.get(f"{API}/forum/posts", params={"liked": True})
    assert [p["id"] for p in response.json()["items"]] == [post_id]

    response = await client.get(f"{API}/forum/posts", params={"category": "General"})
    assert [p["id"] for p in response.json()["items"]] == [post_id]

    response = await client.delete(f"{API}/forum/posts/{post_id}")
    assert response.status_code == 200

    response = await client.get(f"{API}/forum/posts/{post_id}")
    assert response.status_code == 404


async def test_cannot_delete_someone_elses_content(client):
    await _signup(client, "alice")
    post_id = (
        await client.post(f"{API}/forum/posts", json={"title": "Hello", "content": "World"})
    ).json()["id"]
    comment_id = (
        await client.post(f"{API}/forum/posts/{post_id}/comments", json={"content": "hi"})
    ).json()["id"]

    await _signup(client, "bob")

    assert (await client.delete(f"{API}/forum/posts/{post_id}")).status_code == 403
    assert (await client.delete(f"{API}/forum/comments/{comment_id}")).status_code == 403
    assert (await client.delete(f"{API}/forum/posts/9999")).status_code == 404

    response = await client.post(
        f"{API}/forum/comments/{comment_id}/reaction", json={"value": -1}
    )
    assert response.json() == {"reaction": -1, "likes": 0, "dislikes": 1}


async def test_categories_are_seeded(client):
    response = await client.get(f"{API}/forum/categories")

    names = {category["name"] for category in response.json()}
    assert {"General", "Technology", "Gaming", "Sports", "Entertainment"} <= names


async def test_page_size_is_clamped_not_rejected(client):
    response = await client.get(f"{API}/forum/posts", params={"limit": 500, "offset": -5})
    assert response.status_code == 200
    assert (response.json()["limit"], response.json()["offset"]) == (100, 0)

    response = await client.get(f"{API}/forum/posts", params={"limit": 0})
    assert response.json()["limit"] == settings.forum_posts_per_page
