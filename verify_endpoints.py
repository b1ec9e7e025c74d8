#!/usr/bin/env python3
"""
Endpoint Verification Script

Runs a short smoke test against a running proxy: health routes,
the API key check, one single statement and one read-only batch.

Usage:
    API_KEY=... python verify_endpoints.py [base_url]
"""

import os
import sys
from typing import Tuple

import httpx

# ANSI colors for output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_header(text: str):
    """Print a section header."""
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}{text:^60}{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")


def print_result(name: str, success: bool, details: str = ""):
    """Print a test result."""
    status = f"{GREEN}✓ PASS{RESET}" if success else f"{RED}✗ FAIL{RESET}"
    print(f"{status}: {name}")
    if details:
        print(f"       {details}")


def post_proxy(
    client: httpx.Client, payload: dict, api_key: str | None
) -> Tuple[int, object]:
    headers = {"x-api-key": api_key} if api_key else {}
    response = client.post("/api/proxy", json=payload, headers=headers)
    return response.status_code, response.json()


def main(base_url: str) -> int:
    """Run all checks; return the process exit code."""
    api_key = os.getenv("API_KEY", "")
    results: list[bool] = []

    with httpx.Client(base_url=base_url, timeout=10.0) as client:
        print_header("1. Health")
        try:
            response = client.get("/api/health")
            ok = response.status_code == 200
            print_result("GET /api/health", ok, f"Status {response.status_code}")
        except httpx.HTTPError as e:
            print_result("GET /api/health", False, str(e))
            print(f"\n{YELLOW}⚠ Proxy not reachable at {base_url}{RESET}\n")
            return 1
        results.append(ok)

        database = client.get("/api/health/database").json()
        ok = database.get("status") == "healthy"
        print_result("GET /api/health/database", ok, str(database))
        results.append(ok)

        print_header("2. Credential Gate")
        status, _ = post_proxy(client, {"statement": "RETURN 1 AS x"}, "wrong-key")
        ok = status == 403
        print_result("Wrong key rejected", ok, f"Status {status}")
        results.append(ok)

        if not api_key:
            print(f"\n{YELLOW}⚠ API_KEY not set; skipping execution checks{RESET}\n")
            return 0 if all(results) else 1

        print_header("3. Execution")
        status, body = post_proxy(client, {"statement": "RETURN 1 AS x"}, api_key)
        ok = status == 200 and body == [{"x": 1}]
        print_result("Single statement", ok, f"Status {status}: {body}")
        results.append(ok)

        status, body = post_proxy(
            client, {"statements": "RETURN 1 ; RETURN 2"}, api_key
        )
        ok = status == 200 and isinstance(body, dict) and body.get("count") == 2
        print_result("Delimited batch", ok, f"Status {status}: {body}")
        results.append(ok)

        status, body = post_proxy(
            client, {"statements": ["RETURN 1", "INVALID CYPHER"]}, api_key
        )
        ok = status == 500 and body.get("failedStatement") == "INVALID CYPHER"
        print_result("Batch failure attributed", ok, f"Status {status}")
        results.append(ok)

    print_header("Summary")
    if all(results):
        print(f"{GREEN}✓ All checks passed!{RESET}\n")
        return 0
    print(f"{RED}✗ {results.count(False)} check(s) failed.{RESET}\n")
    return 1


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    try:
        sys.exit(main(url))
    except KeyboardInterrupt:
        print(f"\n{YELLOW}Interrupted by user{RESET}\n")
        sys.exit(130)
