from models.users import get_user_by_id


async def test_register_login_me_logout(client):
    res = await client.post(
        "/api/auth/register",
        json={"email": "new@example.com", "username": "newbie", "password": "password123"},
    )
    assert res.status_code == 201
    assert res.json()["role"] == "READER"

    me = await client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "newbie"

    await client.post("/api/auth/logout")
    res = await client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json()["error"] == "Unauthenticated"


async def test_bad_login(client, make_user):
    await make_user("READER", username="reader")
    res = await client.post("/api/auth/login", json={"email": "reader@example.com", "password": "nope-nope"})
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthenticated", "message": "Invalid email or password"}


async def test_anonymous_write_is_401(client, make_category, post_body):
    cat = await make_category("Technology")
    res = await client.post("/api/posts", json=post_body([cat]))
    assert res.status_code == 401
    assert res.json()["error"] == "Unauthenticated"


async def test_post_flow(client, make_user, make_category, login_as, post_body):
    editor = await make_user("EDITOR")
    cat = await make_category("Technology")
    await login_as(client, editor)

    res = await client.post("/api/posts", json=post_body([cat], status="PUBLISHED", tagNames=["News"]))
    assert res.status_code == 201
    post = res.json()
    assert post["slug"] == "hello-world"

    await client.get(f"/api/posts/{post['id']}")
    res = await client.get(f"/api/posts/{post['id']}")
    assert res.json()["viewCount"] == 2

    listing = (await client.get("/api/posts", params={"tag": "news"})).json()
    assert listing["pagination"]["total"] == 1
    assert listing["data"][0]["viewCount"] == 2

    res = await client.put(f"/api/posts/{post['id']}", json=post_body([cat], title="Renamed", status="PUBLISHED"))
    assert res.status_code == 200
    assert res.json()["slug"] == "renamed"
    assert res.json()["tags"] == []

    res = await client.delete(f"/api/posts/{post['id']}")
    assert res.json() == {"message": "Post deleted successfully"}
    assert (await client.get(f"/api/posts/{post['id']}")).status_code == 404


async def test_validation_errors_are_400(client, make_user, make_category, login_as, post_body):
    author = await make_user("AUTHOR")
    cat = await make_category("Technology")
    await login_as(client, author)

    res = await client.post("/api/posts", json=post_body([999]))
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "ValidationFailed"
    assert "categoryIds" in body["details"]

    res = await client.post("/api/posts", json={"title": "", "categoryIds": [cat]})
    assert res.status_code == 400
    assert {"title", "content"} <= set(res.json()["details"])

    res = await client.get("/api/posts", params={"page": 0})
    assert res.status_code == 400
    assert "page" in res.json()["details"]

    res = await client.get("/api/search")
    assert res.status_code == 400
    assert res.json()["error"] == "ValidationFailed"


async def test_other_author_cannot_delete(client_factory, make_user, make_category, login_as, post_body):
    author_a = await make_user("AUTHOR")
    author_b = await make_user("AUTHOR")
    admin = await make_user("ADMIN")
    cat = await make_category("Technology")

    a, b, boss = client_factory(), client_factory(), client_factory()
    await login_as(a, author_a)
    await login_as(b, author_b)
    await login_as(boss, admin)

    post = (await a.post("/api/posts", json=post_body([cat]))).json()

    res = await b.delete(f"/api/posts/{post['id']}")
    assert res.status_code == 403
    assert res.json()["error"] == "Forbidden"

    res = await boss.delete(f"/api/posts/{post['id']}")
    assert res.status_code == 200


async def test_deactivation_mid_session(client_factory, make_user, make_category, login_as, post_body):
    author = await make_user("AUTHOR")
    admin = await make_user("ADMIN")
    cat = await make_category("Technology")

    writer, boss = client_factory(), client_factory()
    await login_as(writer, author)
    await login_as(boss, admin)

    assert (await writer.post("/api/posts", json=post_body([cat]))).status_code == 201

    res = await boss.patch(f"/api/admin/users/{author}", json={"isActive": False})
    assert res.status_code == 200
    assert res.json()["isActive"] is False

    # 같은 세션 쿠키로 바로 다음 요청
    res = await writer.post("/api/posts", json=post_body([cat]))
    assert res.status_code == 403
    assert res.json()["error"] == "AccountDeactivated"
    assert (await get_user_by_id(author))["is_active"] is False


async def test_engagement_endpoints(client, make_user, make_category, login_as, post_body):
    editor = await make_user("EDITOR")
    cat = await make_category("Technology")
    await login_as(client, editor)
    post = (await client.post("/api/posts", json=post_body([cat], status="PUBLISHED"))).json()
    url = f"/api/posts/{post['id']}"

    res = await client.post(f"{url}/like")
    assert res.json() == {"message": "Post liked successfully", "likeCount": 1}

    res = await client.post(f"{url}/like")
    assert res.status_code == 400
    assert res.json()["error"] == "Conflict"

    await client.delete(f"{url}/like")
    res = await client.delete(f"{url}/like")
    assert res.status_code == 400
    assert res.json() == {"error": "NotFound", "message": "Post not liked"}

    res = await client.post(f"{url}/bookmark")
    assert res.json()["bookmarkCount"] == 1

    status = (await client.get(f"{url}/engagement")).json()
    assert status == {"liked": False, "bookmarked": True, "likeCount": 0, "bookmarkCount": 1}


async def test_comment_endpoints(client, make_user, make_category, login_as, post_body):
    editor = await make_user("EDITOR")
    cat = await make_category("Technology")
    await login_as(client, editor)
    post = (await client.post("/api/posts", json=post_body([cat], status="PUBLISHED"))).json()
    url = f"/api/posts/{post['id']}/comments"

    res = await client.post(url, json={"content": "Nice post"})
    assert res.status_code == 201
    parent = res.json()

    res = await client.post(url, json={"content": "Thanks", "parentId": parent["id"]})
    assert res.status_code == 201

    res = await client.post(url, json={"content": "Lost", "parentId": 9999})
    assert res.status_code == 404

    thread = (await client.get(url)).json()
    assert len(thread) == 1
    assert [r["content"] for r in thread[0]["replies"]] == ["Thanks"]

    res = await client.put(f"/api/comments/{parent['id']}", json={"content": "Nice post!"})
    assert res.json()["content"] == "Nice post!"

    res = await client.delete(f"/api/comments/{parent['id']}")
    assert res.json() == {"message": "Comment deleted successfully"}
    assert (await client.get(url)).json() == []


async def test_categories(client_factory, make_user, login_as):
    admin = await make_user("ADMIN")
    author = await make_user("AUTHOR")
    boss, writer = client_factory(), client_factory()
    await login_as(boss, admin)
    await login_as(writer, author)

    res = await boss.post("/api/categories", json={"name": "Machine Learning", "description": "ML"})
    assert res.status_code == 201
    assert res.json()["slug"] == "machine-learning"

    res = await boss.post("/api/categories", json={"name": "machine learning"})
    assert res.status_code == 400
    assert res.json()["error"] == "Conflict"

    res = await writer.post("/api/categories", json={"name": "Other"})
    assert res.status_code == 403

    listing = (await writer.get("/api/categories")).json()
    assert listing == [
        {
            "id": listing[0]["id"],
            "name": "Machine Learning",
            "slug": "machine-learning",
            "description": "ML",
            "image": None,
            "parentId": None,
            "createdAt": listing[0]["createdAt"],
            "postCount": 0,
        }
    ]


async def test_admin_users_endpoint(client, make_user, login_as):
    admin = await make_user("ADMIN")
    await make_user("READER")

    assert (await client.get("/api/admin/users")).status_code == 401

    await login_as(client, admin)
    res = await client.get("/api/admin/users")
    assert res.status_code == 200
    assert len(res.json()) == 2


async def test_unknown_route(client):
    res = await client.get("/api/nothing-here")
    assert res.status_code == 404
    assert res.json()["error"] == "NotFound"


async def test_search_endpoint(client, make_user, make_category, login_as, post_body):
    editor = await make_user("EDITOR")
    cat = await make_category("Technology")
    await login_as(client, editor)
    await client.post("/api/posts", json=post_body([cat], title="Event Loops", status="PUBLISHED"))

    res = await client.get("/api/search", params={"q": "event"})
    assert res.status_code == 200
    assert res.json()["query"] == "event"
    assert res.json()["pagination"]["total"] == 1

    res = await client.get("/api/posts", params={"search": "LOOPS"})
    assert res.status_code == 200
    assert res.json()["pagination"]["total"] == 1


async def test_wrong_method_is_not_reported_as_missing(client):
    res = await client.delete("/api/categories")
    assert res.status_code == 405
    assert res.json()["error"] == "ValidationFailed"
