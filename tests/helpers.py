PASSWORD = "longenough1"


def refresh_cookie_value(response):
    """Value of the refresh_token cookie set by a response, or None."""
    header = refresh_cookie_header(response)
    if header is None:
        return None
    return header.split(";", 1)[0].partition("=")[2]


def refresh_cookie_header(response):
    for header in response.headers.getlist("Set-Cookie"):
        if header.startswith("refresh_token="):
            return header
    return None


def login(client, email="a@b.com", password=PASSWORD, headers=None):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password}, headers=headers)


def with_cookie(value):
    return {"Cookie": f"refresh_token={value}"}


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
