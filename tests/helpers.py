PASSWORD = "correct-horse-42"


def register(client, username: str, email: str = None, password: str = PASSWORD) -> dict:
    email = email or f"{username}@example.com"
    resp = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password, "confirmPassword": password},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def login(client, email: str, password: str = PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def sign_in(client, username: str, email: str = None) -> dict:
    email = email or f"{username}@example.com"
    register(client, username, email)
    resp = login(client, email)
    assert resp.status_code == 200, resp.text
    return resp.json()["user"]


def add_task(client, content: str, category: str = "today", **extra) -> dict:
    resp = client.post("/api/tasks", json={"content": content, "category": category, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


def contents(tasks) -> list:
    return [t["content"] for t in tasks]
