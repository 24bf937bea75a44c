"""
Namespaced cache key construction shared by the cache store and repositories.
"""
import re

_GLOB_CHARS = re.compile(r"([*?\[\]\\])")


class CacheKeyGenerator:
    def __init__(self, prefix: str):
        if not prefix:
            raise ValueError("cache prefix must not be empty")
        self.prefix = prefix

    def build(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def pattern(self) -> str:
        """SCAN/KEYS pattern matching every key in this namespace and no other."""
        escaped = _GLOB_CHARS.sub(r"\\\1", self.prefix)
        return escaped + ":*"

    @staticmethod
    def logical(*parts: str) -> str:
        """Join logical key parts, e.g. logical("student", "email", "a@x.com")."""
        return ":".join(str(part) for part in parts)
