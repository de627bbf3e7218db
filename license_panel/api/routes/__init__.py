from . import backup, licenses, users, wipe

__all__ = ["backup", "licenses", "users", "wipe"]
