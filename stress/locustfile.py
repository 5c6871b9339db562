"""Locust profile replaying the redirect + details request mix.

Every user makes sure the ``mario-long`` alias exists (a 409 from a previous
user or run counts as success), then alternates between the redirect endpoint
(without following it) and the details endpoint.

Ramp shape, user counts and thresholds are Locust command-line concerns::

    locust -f stress/locustfile.py --host http://localhost:8080 \
        --users 50 --spawn-rate 5 --run-time 50s --headless

Environment:
    API_KEY  value sent as X-API-KEY when creating the alias (default dev-key-123)
    ALIAS    alias to exercise (default mario-long)
    TARGET   target URL for the alias (default https://google.com)
"""

import os

from locust import HttpUser, constant, task

API_KEY = os.getenv("API_KEY", "dev-key-123")
ALIAS = os.getenv("ALIAS", "mario-long")
TARGET = os.getenv("TARGET", "https://google.com")


class ShortLinkUser(HttpUser):
    """Reader profile over one seeded alias."""

    wait_time = constant(1)

    def on_start(self) -> None:
        """Create the alias, accepting 409 when it already exists."""

        with self.client.post(
            "/links",
            json={"targetUrl": TARGET, "customAlias": ALIAS},
            headers={"X-API-KEY": API_KEY},
            name="POST /links",
            catch_response=True,
        ) as response:
            if response.status_code in (200, 201, 409):
                response.success()
            else:
                response.failure(f"create {ALIAS}: {response.status_code}")

    @task
    def redirect_and_details(self) -> None:
        with self.client.get(
            f"/r/{ALIAS}",
            name="GET /r/:alias",
            allow_redirects=False,
            catch_response=True,
        ) as response:
            if response.status_code == 302:
                response.success()
            else:
                response.failure(f"redirect status {response.status_code}")

        with self.client.get(f"/links/{ALIAS}", name="GET /links/:alias", catch_response=True) as response:
            if response.status_code == 200:
                response.success()
            else:
                response.failure(f"details status {response.status_code}")
