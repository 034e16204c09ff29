import re
import bcrypt

_POLICY = [
    (re.compile(r"[A-Z]"), "must contain an uppercase letter"),
    (re.compile(r"[a-z]"), "must contain a lowercase letter"),
    (re.compile(r"\d"), "must contain a number"),
    (re.compile(r"[^A-Za-z0-9]"), "must contain a special character"),
]
MIN_LENGTH = 8

# never matches a bcrypt hash; used for anonymized accounts
UNUSABLE_PASSWORD = "!"


def password_problems(password: str) -> list[str]:
    problems = []
    if len(password) < MIN_LENGTH:
        problems.append(f"must be at least {MIN_LENGTH} characters")
    problems.extend(msg for rx, msg in _POLICY if not rx.search(password))
    return problems


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not hashed or hashed == UNUSABLE_PASSWORD:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
