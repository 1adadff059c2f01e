async def test_notify_and_admin_listing(client, register, admin_headers):
    ada = await register("Ada", "ada@example.com")

    created = await client.post("/api/notify", json={"title": "Hi", "content": "Points week"}, headers=ada["headers"])
    assert created.status_code == 200
    assert created.json()["data"]["user"] == ada["user"]["id"]

    listing = await client.get("/api/notifications", headers=admin_headers)
    body = listing.json()
    assert body["count"] == 1
    assert body["data"][0]["title"] == "Hi"
    assert body["data"][0]["user"] == {"id": ada["user"]["id"], "name": "Ada"}

    mine = await client.get("/api/user-notifications", headers=ada["headers"])
    assert [n["content"] for n in mine.json()["data"]] == ["Points week"]


async def test_notify_requires_title_and_content(client, register):
    ada = await register("Ada", "ada@example.com")
    resp = await client.post("/api/notify", json={"title": "Hi"}, headers=ada["headers"])
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Bad request"}


async def test_notify_requires_authentication(client):
    resp = await client.post("/api/notify", json={"title": "Hi", "content": "there"})
    assert resp.status_code == 401


async def test_deleting_a_user_removes_their_notifications(client, register, admin_headers):
    ada = await register("Ada", "ada@example.com")
    await client.post("/api/notify", json={"title": "Hi", "content": "x"}, headers=ada["headers"])

    await client.delete(f"/api/delete/{ada['user']['id']}", headers=admin_headers)

    listing = await client.get("/api/notifications", headers=admin_headers)
    assert listing.json()["count"] == 0
