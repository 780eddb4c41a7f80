#!/usr/bin/env python3
"""
End-to-end smoke test against a running server.

Logs in as each user created by ``manage.py ensure_test_users``, hits the
main endpoints for that role and then walks the emergency / share token
flow.  Exits non-zero when any check fails.

    python manage.py ensure_test_users
    python manage.py runserver
    python smoke_api.py [BASE_URL]
"""
import sys
import time
from dataclasses import dataclass
from typing import Optional

import requests

BASE_URL = (sys.argv[1] if len(sys.argv) > 1 else "http://127.0.0.1:8000").rstrip("/")
PASSWORD = "Test1234!"

TEST_USERS = {
    "admin": "admin1@example.com",
    "provider": "provider1@example.com",
    "caregiver": "caregiver1@example.com",
    "patient": "patient1@example.com",
}


@dataclass
class CheckResult:
    success: bool
    endpoint: str
    method: str
    status_code: int
    response_time: float
    description: str = ""
    user_role: str = ""


class SmokeTester:
    def __init__(self):
        self.session = requests.Session()
        self.headers = {}
        self.current_role = None
        self.results: list[CheckResult] = []

    def login(self, role: str) -> bool:
        self.headers = {}
        resp = self.check("POST", "/api/auth/login", {"email": TEST_USERS[role], "password": PASSWORD},
                          description=f"login as {role}", role=role)
        if resp is None or resp.status_code != 200:
            return False
        self.headers = {"Authorization": f"Bearer {resp.json()['jwt_access']}"}
        self.current_role = role
        return True

    def check(self, method: str, endpoint: str, data: Optional[dict] = None, expected_status=200,
              description: str = "", role: Optional[str] = None) -> Optional[requests.Response]:
        start = time.time()
        try:
            resp = self.session.request(method, f"{BASE_URL}{endpoint}", json=data, headers=self.headers, timeout=10)
        except requests.RequestException as e:
            print(f"❌ {method} {endpoint}: {e}")
            self.results.append(CheckResult(False, endpoint, method, 0, 0, description, role or self.current_role))
            return None
        elapsed = time.time() - start
        expected = expected_status if isinstance(expected_status, tuple) else (expected_status,)
        ok = resp.status_code in expected
        self.results.append(CheckResult(ok, endpoint, method, resp.status_code, elapsed, description,
                                        role or self.current_role))
        mark = "✅" if ok else "❌"
        wanted = "/".join(map(str, expected))
        print(f"{mark} {method} {endpoint} -> {resp.status_code} (expected {wanted}, {elapsed:.2f}s) {description}")
        if not ok:
            print(f"   {resp.text[:200]}")
        return resp

    def run_role_checks(self, role: str):
        print(f"\n--- {role} ---")
        if not self.login(role):
            return
        self.check("GET", "/api/auth/me")
        self.check("GET", "/api/records")
        self.check("GET", "/api/share-tokens")
        admin_status = 200 if role == "admin" else 403
        self.check("GET", "/api/admin/summary", expected_status=admin_status)
        self.check("GET", "/api/admin/access-logs", expected_status=admin_status)

    def run_emergency_flow(self):
        print("\n--- emergency & share flow ---")
        if not self.login("patient"):
            return
        self.check("POST", "/api/user/me/health", {"blood_group": "O+", "allergies": ["Peanuts"]},
                   expected_status=(200, 201), description="upsert profile")
        self.check("GET", "/api/user/me/qr")
        public_id = self.check("GET", "/api/user/me/public-id").json().get("public_id")

        record = self.check("POST", "/api/records", {"title": "Smoke record"}, expected_status=201).json()["data"]
        token = self.check("POST", "/api/share-tokens", {"record_ids": [record["id"]]}, expected_status=201).json()["token"]

        self.headers = {}
        self.check("GET", f"/e/{public_id}", description="public emergency view")
        self.check("GET", "/e/does-not-exist", expected_status=404)
        self.check("GET", f"/share/{token}", description="first redemption")
        self.check("GET", f"/share/{token}", expected_status=410, description="second redemption")

    def report(self) -> int:
        failed = [r for r in self.results if not r.success]
        print(f"\n{len(self.results) - len(failed)}/{len(self.results)} checks passed")
        for r in failed:
            print(f"  FAILED [{r.user_role}] {r.method} {r.endpoint} -> {r.status_code} {r.description}")
        return 1 if failed else 0


def main():
    tester = SmokeTester()
    tester.check("GET", "/health", description="health check")
    for role in TEST_USERS:
        tester.run_role_checks(role)
    tester.run_emergency_flow()
    sys.exit(tester.report())


if __name__ == "__main__":
    main()
