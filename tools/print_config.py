"""Print the effective runtime configuration as JSON, with secrets masked."""

import json
import logging
import os
import sys


def get_log_config():
    log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    return {
        "log_dir": os.path.abspath(os.getenv("LOG_DIR", "logs")),
        "log_level": logging.getLevelName(log_level),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
        "log_request_bodies": os.getenv("LOG_REQUEST_BODIES", "false").lower() == "true",
        "retention_days": int(os.getenv("LOG_RETENTION_DAYS", "7")),
        "rotate_utc": os.getenv("LOG_ROTATE_UTC", "false").lower() == "true",
    }


def get_auth_config():
    return {
        "secret_configured": bool(os.getenv("AUTH_TOKEN_SECRET", "").strip()),
        "jwks_url": os.getenv("AUTH_JWKS_URL") or None,
        "algorithm": os.getenv("AUTH_TOKEN_ALGORITHM", "HS256"),
        "audience": os.getenv("AUTH_TOKEN_AUDIENCE", "authenticated") or None,
        "issuer": os.getenv("AUTH_TOKEN_ISSUER") or None,
        "leeway_seconds": os.getenv("AUTH_TOKEN_LEEWAY_SECONDS", "0"),
    }


def get_config():
    return {
        "database_configured": bool(os.getenv("DATABASE_URL")),
        "auth": get_auth_config(),
        "logging": get_log_config(),
        "rate_limit": {
            "enabled": os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
            "delete_contact": os.getenv("DELETE_CONTACT_RATE_LIMIT", "30/minute"),
        },
    }


def main():
    sys.stdout.write(json.dumps(get_config(), indent=2) + "\n")


if __name__ == "__main__":
    main()
