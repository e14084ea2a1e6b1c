from beanie import Document, Indexed


class User(Document):
    """Account record. Owned by the main application; this package only reads it."""
    email: Indexed(str, unique=True)
    username: str | None = None
    name: str | None = None

    class Settings:
        name = "users"
