import base64
import hashlib
import hmac
import os

from werkzeug.security import check_password_hash

# Stored format: pbkdf2:<iterations>:<base64_salt>:<base64_hash>
PREFIX = "pbkdf2:"
ITERATIONS = 100000
SALT_BYTES = 16
KEY_LEN_BYTES = 32
WERKZEUG_METHODS = ("pbkdf2", "scrypt")


def _derive(password, salt, iterations):
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations,
        dklen=KEY_LEN_BYTES
    )


def _is_werkzeug_hash(stored):
    return stored.count("$") == 2 and stored.split(":", 1)[0] in WERKZEUG_METHODS


def hash_password(password: str) -> str:
    salt = os.urandom(SALT_BYTES)
    derived = _derive(password, salt, ITERATIONS)
    return "{}{}:{}:{}".format(
        PREFIX,
        ITERATIONS,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(derived).decode("ascii"),
    )


def verify_password(password: str, stored: str) -> bool:
    if not stored:
        return False

    # rows created with werkzeug's generate_password_hash ("method:params$salt$hash")
    if _is_werkzeug_hash(stored):
        return check_password_hash(stored, password)

    if not stored.startswith(PREFIX):
        # legacy rows still hold the plain password
        return password == stored

    try:
        _, iter_str, salt_b64, hash_b64 = stored.split(":")
        iterations = int(iter_str)
        salt = base64.b64decode(salt_b64, validate=True)
        expected = base64.b64decode(hash_b64, validate=True)
    except (ValueError, TypeError):
        return False

    if iterations <= 0:
        return False

    return hmac.compare_digest(_derive(password, salt, iterations), expected)
