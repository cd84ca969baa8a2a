#!/usr/bin/env python3
"""
Clear flood control for a phone number (e.g. after "Too many verification
code requests"). Uses REDIS_URL from env to delete the Redis keys, or calls the
admin API when REDIS_URL is not set.

Usage:
  python scripts/clear_flood.py +12015550123

  # Via API (set API_BASE_URL and ADMIN_PASS, optionally ADMIN_USER)
  API_BASE_URL=http://localhost:8000 ADMIN_PASS=your_admin_pass python scripts/clear_flood.py +12015550123
"""
import os
import sys

import phonenumbers
import redis
import requests
from dotenv import load_dotenv

FLOOD_NAMES = ("phonenumber_verification", "phonenumber_verification_sms")


def normalize_phone(phone: str) -> str:
    """E.164 form, the identifier flood events are registered under."""
    try:
        return phonenumbers.format_number(phonenumbers.parse(phone, None), phonenumbers.PhoneNumberFormat.E164)
    except phonenumbers.NumberParseException:
        return phone


def clear_via_redis(phone: str) -> bool:
    url = os.environ.get("REDIS_URL")
    if not url:
        return False
    try:
        r = redis.Redis.from_url(url)
        r.ping()
    except redis.RedisError as e:
        print(f"Redis connection failed: {e}", file=sys.stderr)
        return False
    keys = [f"flood:{name}:{phone}" for name in FLOOD_NAMES]
    cleared = r.delete(*keys)
    if cleared > 0:
        print(f"Cleared {cleared} flood key(s) for {phone} (Redis).")
    else:
        print(f"No flood keys found for {phone} (Redis).")
    return True


def clear_via_api(phone: str) -> bool:
    base = os.environ.get("API_BASE_URL", "").rstrip("/")
    admin_pass = os.environ.get("ADMIN_PASS")
    if not base or not admin_pass:
        return False
    url = f"{base}/admin/flood/clear"
    try:
        resp = requests.post(
            url,
            json={"phone_number": phone},
            auth=(os.environ.get("ADMIN_USER", "admin"), admin_pass),
            timeout=10,
        )
        if resp.status_code == 200:
            print(resp.json().get("message", "Flood events cleared."))
            return True
        print(f"API error {resp.status_code}: {resp.text}", file=sys.stderr)
        return False
    except requests.exceptions.RequestException as e:
        print(f"Request failed: {e}", file=sys.stderr)
        return False


def main():
    phone = (sys.argv[1] if len(sys.argv) > 1 else os.environ.get("PHONE", "")).strip()
    if not phone or not phone.lstrip("+").isdigit():
        print("Usage: python scripts/clear_flood.py <phone e.g. +12015550123>", file=sys.stderr)
        sys.exit(1)
    if not phone.startswith("+"):
        phone = "+" + phone
    phone = normalize_phone(phone)
    if clear_via_redis(phone):
        sys.exit(0)
    if clear_via_api(phone):
        sys.exit(0)
    print(
        "Set REDIS_URL (to clear via Redis) or API_BASE_URL and ADMIN_PASS (to clear via API).",
        file=sys.stderr,
    )
    sys.exit(1)


if __name__ == "__main__":
    # Load .env from project root
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    load_dotenv(os.path.join(root, ".env"))
    main()
