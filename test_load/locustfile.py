from locust import HttpUser, task, between
import random

SORTS = ["created_at", "view_count", "like_count", "popular"]
CATEGORIES = ["general", "anime", "people"]


class BrowseLoadTest(HttpUser):
    """Anonymous visitors browsing wallpapers, tags and the forum"""
    wait_time = between(1, 2)

    @task(5)
    def list_wallpapers(self):
        params = {
            "page": random.randint(1, 10),
            "limit": random.choice([10, 20, 50]),
            "sort_by": random.choice(SORTS),
        }
        if random.random() < 0.3:
            params["category"] = random.choice(CATEGORIES)
        self.client.get("/api/v1/wallpapers/", params=params, headers={"accept": "application/json"})

    @task(2)
    def popular_tags(self):
        self.client.get("/api/v1/tags/popular", params={"limit": 20}, headers={"accept": "application/json"})

    @task(2)
    def list_posts(self):
        self.client.get(
            "/api/v1/posts/",
            params={"page": random.randint(1, 5), "sort_by": random.choice(["created_at", "popular"])},
            headers={"accept": "application/json"}
        )

    @task(1)
    def wallpaper_detail(self):
        # Unknown ids are expected to 404
        with self.client.get(
            f"/api/v1/wallpapers/{random.randint(1, 500)}",
            name="/api/v1/wallpapers/[id]",
            catch_response=True,
        ) as response:
            if response.status_code in (200, 404):
                response.success()
