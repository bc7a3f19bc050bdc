"""Durable per-client identity used as the lease holder."""

import json
import logging
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_PATH = "~/.config/parkgrid/client.json"


class ClientIdentity:
    """Opaque client id, generated once and kept on disk.

    The id has no server-side registration: it only shows up as a lease
    holder. Reusing it across restarts lets a client re-claim its own lease.
    """

    def __init__(self, client_id: str, path: Path | None = None):
        """Initialize client identity.

        Args:
            client_id: Opaque client id
            path: File the id was loaded from, if any
        """
        if not client_id:
            raise ValueError("client_id must not be empty")
        self.client_id = client_id
        self.path = path

    @classmethod
    def load(cls, path: str | Path = DEFAULT_IDENTITY_PATH) -> "ClientIdentity":
        """Load the client id from a JSON file, creating it on first use.

        Args:
            path: Identity file (relative or absolute, ``~`` is expanded)

        Returns:
            ClientIdentity
        """
        identity_path = Path(path).expanduser().resolve()

        if identity_path.exists():
            try:
                with open(identity_path) as f:
                    data = json.load(f)
                client_id = data["client_id"]
                if client_id:
                    logger.debug(f"Loaded client id from {identity_path}")
                    return cls(client_id, identity_path)
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                logger.warning(f"Unreadable identity file {identity_path}, regenerating: {e}")

        identity = cls(uuid.uuid4().hex, identity_path)
        identity.save()
        logger.info(f"Generated new client id at {identity_path}")
        return identity

    @classmethod
    def ephemeral(cls) -> "ClientIdentity":
        """Create an identity that is not persisted."""
        return cls(uuid.uuid4().hex)

    def save(self) -> None:
        """Write the id to its file."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({"client_id": self.client_id}, f, indent=2)

    def __str__(self) -> str:
        return self.client_id

    def __repr__(self) -> str:
        return f"ClientIdentity({self.client_id!r})"
