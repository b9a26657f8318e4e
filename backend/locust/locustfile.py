"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test public reads + hit recording
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import datetime, timedelta

from locust import HttpUser, between, events, tag, task

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONCURRENCY_LIMIT = 10

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None


def random_email():
    return f"load_{random.randint(10000, 99999)}_{random.randint(0, 999)}@test.com"


def random_name():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def create_user(client):
    resp = client.post("/admin/users", json={"name": random_name(), "email": random_email()},
                       name="/admin/users")
    return resp.json()["id"] if resp.status_code == 201 else None


def create_published_event(client, initiator_id, participant_limit, moderation):
    """Category -> event -> admin publish. Returns the event id or None."""
    resp = client.post("/admin/categories", json={"name": f"load-{random_name()}"},
                       name="/admin/categories")
    if resp.status_code != 201:
        return None
    category_id = resp.json()["id"]

    event_date = (datetime.now() + timedelta(days=30)).strftime(DATE_FORMAT)
    resp = client.post(
        f"/users/{initiator_id}/events",
        json={
            "annotation": "Load test event with a small participant limit",
            "description": "Many requesters race for the same few confirmed slots",
            "category": category_id,
            "eventDate": event_date,
            "location": {"lat": 55.75, "lon": 37.62},
            "participantLimit": participant_limit,
            "requestModeration": moderation,
            "title": "Concurrency Test Event",
        },
        name="/users/{userId}/events",
    )
    if resp.status_code != 201:
        return None
    event_id = resp.json()["id"]

    resp = client.patch(f"/admin/events/{event_id}", json={"stateAction": "PUBLISH_EVENT"},
                        name="/admin/events/{eventId}")
    return event_id if resp.status_code == 200 else None


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: concurrency event is created by the first user")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 requesters -> 10 auto-confirmed slots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      POST /admin/events/{id}/reconcile  ->  corrected: false, actual <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = create_user(self.client)

        if not CONCURRENCY_EVENT_ID and self.user_id:
            initiator_id = create_user(self.client)
            event_id = create_published_event(self.client, initiator_id, CONCURRENCY_LIMIT, moderation=False)
            if event_id:
                globals()["CONCURRENCY_EVENT_ID"] = event_id
                print(f"\nCreated event {event_id} with {CONCURRENCY_LIMIT} slots\n")

    @tag("concurrency")
    @task
    def request_limited_slot(self):
        """All users fight for the same 10 slots."""
        if not CONCURRENCY_EVENT_ID or not self.user_id:
            return

        with self.client.post(
            f"/users/{self.user_id}/requests?eventId={CONCURRENCY_EVENT_ID}",
            name="/users/{userId}/requests",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: full, or already requested
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - public reads, each recording a hit with the stats server

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def search_events(self):
        resp = self.client.get(f"/events?from={random.randint(0, 40)}&size=10", name="/events")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/events/{random.choice(EVENT_IDS)}", name="/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.user_id = create_user(self.client) or 1

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post(f"/users/{self.user_id}/requests?eventId=999999",
                              name="/users/{userId}/requests [unknown]", catch_response=True) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def missing_event_id(self):
        with self.client.post(f"/users/{self.user_id}/requests",
                              name="/users/{userId}/requests [no eventId]", catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def empty_moderation_batch(self):
        with self.client.patch(f"/users/{self.user_id}/events/1/requests",
                               json={"requestIds": [], "status": "CONFIRMED"},
                               name="/users/{userId}/events/{eventId}/requests [empty]",
                               catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def malformed_stats_range(self):
        with self.client.get("/events?rangeStart=yesterday", name="/events [bad date]",
                             catch_response=True) as resp:
            self._expect(resp, (400,))


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some participation requests and cancellations
      - Rare event creation
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.user_id = create_user(self.client)
        self.request_ids = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/events?size=20", name="/events")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/events/{random.choice(EVENT_IDS)}", name="/events/{id}")

    @task(10)
    def request_participation(self):
        if EVENT_IDS and self.user_id:
            resp = self.client.post(
                f"/users/{self.user_id}/requests?eventId={random.choice(EVENT_IDS)}",
                name="/users/{userId}/requests",
            )
            if resp.status_code == 201:
                self.request_ids.append(resp.json()["id"])

    @task(3)
    def cancel_participation(self):
        if self.request_ids:
            request_id = self.request_ids.pop()
            self.client.patch(f"/users/{self.user_id}/requests/{request_id}/cancel",
                              name="/users/{userId}/requests/{requestId}/cancel")

    @task(2)
    def create_event(self):
        if self.user_id:
            event_id = create_published_event(self.client, self.user_id, random.randint(0, 50),
                                              moderation=random.choice([True, False]))
            if event_id:
                EVENT_IDS.append(event_id)
