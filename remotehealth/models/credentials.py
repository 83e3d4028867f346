from werkzeug.security import generate_password_hash, check_password_hash

# werkzeug hash prefixes; anything else in the column is a legacy plaintext password
_HASH_PREFIXES = ("pbkdf2:", "scrypt:")


def is_hashed(stored: str | None) -> bool:
    return bool(stored) and stored.startswith(_HASH_PREFIXES)


class CredentialsMixin:
    """Password handling shared by Administrator, Doctor and Patient."""

    def set_password(self, raw: str):
        self.password = generate_password_hash(raw.strip())

    def check_password(self, raw: str | None) -> bool:
        if not self.password or raw is None:
            return False
        if is_hashed(self.password):
            return check_password_hash(self.password, raw.strip())
        # legacy rows imported from the plaintext schema
        return self.password.strip() == raw.strip()

    @property
    def needs_rehash(self) -> bool:
        return not is_hashed(self.password)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}
