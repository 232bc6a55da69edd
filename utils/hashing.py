from passlib.context import CryptContext

bcrypt_context = CryptContext(schemes=['bcrypt'], deprecated='auto')


def get_password_hash(password: str) -> str:
    """bcrypt hash of a courier login password."""
    # bcrypt only reads the first 72 bytes, and newer backends reject longer input
    return bcrypt_context.hash(password.encode("utf-8")[:72])
