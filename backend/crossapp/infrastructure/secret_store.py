"""Secret Store — process-local map from reference keys to credential values.

Invariants:
    - Values are held as SecretStr and only unwrapped by ClientHandle
    - Connection records reference keys; they never embed values
    - Nothing here is persisted: values arrive from configuration or registration
"""

from pydantic import SecretStr


class SecretStore:
    def __init__(self, initial: dict[str, SecretStr] | None = None):
        self._secrets: dict[str, SecretStr] = dict(initial or {})

    def put(self, key: str, value: SecretStr | str) -> str:
        if not isinstance(value, SecretStr):
            value = SecretStr(value)
        self._secrets[key] = value
        return key

    def get(self, key: str | None) -> SecretStr | None:
        if key is None:
            return None
        return self._secrets.get(key)

    def delete(self, key: str | None) -> None:
        if key is not None:
            self._secrets.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._secrets

    def __repr__(self) -> str:
        return f"SecretStore(keys={sorted(self._secrets)})"
