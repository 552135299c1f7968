"""
Data Loader Script - seeds a running instance with a sample class.

Registers a handful of students, records one day of attendance for them
and one round of marks, all through the public API.

Usage:
    python load_data.py                              # Uses default URL
    python load_data.py http://localhost:8000        # Custom API URL
"""

import json
import sys
import os

import httpx

ADMIN_HEADERS = {"X-User-Id": "seed-script", "X-User-Role": "admin"}

SAMPLE_CLASS = "3"
SAMPLE_DATE = "05-03-2024"
SAMPLE_STUDENTS = [
    {"name": "Alice Fernandes", "roll_number": "A1", "email": "alice@example.com"},
    {"name": "Bob Mathew", "roll_number": "A2", "email": "bob@example.com"},
    {"name": "Chitra Nair", "roll_number": "A3", "email": "chitra@example.com"},
]
SAMPLE_ATTENDANCE = {"A1": "present", "A2": "absent", "A3": "present"}
SAMPLE_MARKS = {
    "Math": {"Alice Fernandes": 40, "Bob Mathew": 50, "Chitra Nair": 60},
    "Science": {"Alice Fernandes": 72, "Bob Mathew": 44, "Chitra Nair": 91},
}


def _post(client: httpx.Client, path: str, payload: dict) -> dict:
    resp = client.post(path, json=payload, headers=ADMIN_HEADERS)
    body = resp.json()
    if resp.status_code >= 400 and body.get("error") != "DuplicateRecord":
        resp.raise_for_status()
    return body


def seed(client: httpx.Client, class_label: str = SAMPLE_CLASS, date: str = SAMPLE_DATE) -> dict:
    """
    Push the sample data through ``client`` (any httpx.Client bound to the
    service base URL). Records that already exist are skipped, so running
    the script twice is harmless.
    """
    summary = {"students": 0, "attendance": 0, "marks": 0, "skipped": 0}

    for student in SAMPLE_STUDENTS:
        body = _post(client, "/api/students", {**student, "class_label": class_label})
        if body.get("success"):
            summary["students"] += 1
        else:
            summary["skipped"] += 1

    body = _post(client, "/api/attendance/bulk", {
        "date": date,
        "class_label": class_label,
        "records": [
            {"roll_number": s["roll_number"], "name": s["name"], "status": SAMPLE_ATTENDANCE[s["roll_number"]]}
            for s in SAMPLE_STUDENTS
        ]
    })
    if body.get("success"):
        summary["attendance"] += body["data"]["written"]
    else:
        summary["skipped"] += len(SAMPLE_STUDENTS)

    for subject, scores in SAMPLE_MARKS.items():
        body = _post(client, "/api/marks/bulk", {
            "subject": subject,
            "class_label": class_label,
            "exam_type": "midterm",
            "records": [{"name": name, "score": score} for name, score in scores.items()]
        })
        summary["marks"] += len(body["data"]["succeeded"])
        summary["skipped"] += len(body["data"]["failed"])

    return summary


def main():
    api_url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("API_URL", "http://localhost:8000")

    print(f"Seeding sample class {SAMPLE_CLASS} at {api_url}")
    with httpx.Client(base_url=api_url, timeout=30.0) as client:
        summary = seed(client)

    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
