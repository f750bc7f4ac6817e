"""Sources of the reference ads.txt and the target domain list."""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any, Iterable

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from ..config import StoreConfig, StoreType
from ..errors import StoreError


def clean_domains(lines: Iterable[str]) -> list[str]:
    """Drop blank and ``#`` comment lines from a domain list."""

    domains: list[str] = []
    for line in lines:
        entry = line.split("#", 1)[0].strip()
        if entry:
            domains.append(entry)
    return domains


class ReferenceStore(ABC):
    """Supply the publisher's own ads.txt and the domains to verify."""

    @abstractmethod
    def open_reference(self) -> IO[bytes]:
        """Return the reference ads.txt as a readable byte stream."""

    @abstractmethod
    def load_domains(self) -> list[str]:
        """Return the ordered list of target domains."""

    @abstractmethod
    def seed(self, reference_text: str, domains: Iterable[str]) -> None:
        """Replace the stored reference file and domain list."""

    def close(self) -> None:
        return


class FileStore(ReferenceStore):
    """Reference file and newline separated domain list on local disk."""

    def __init__(self, reference_path: Path, domains_path: Path) -> None:
        self.reference_path = reference_path
        self.domains_path = domains_path

    def open_reference(self) -> IO[bytes]:
        try:
            return self.reference_path.open("rb")
        except OSError as exc:
            raise StoreError(f"could not open reference ads.txt {self.reference_path}: {exc}") from exc

    def load_domains(self) -> list[str]:
        try:
            text = self.domains_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreError(f"could not read domain list {self.domains_path}: {exc}") from exc
        return clean_domains(text.splitlines())

    def seed(self, reference_text: str, domains: Iterable[str]) -> None:
        self.reference_path.parent.mkdir(parents=True, exist_ok=True)
        self.domains_path.parent.mkdir(parents=True, exist_ok=True)
        self.reference_path.write_text(reference_text, encoding="utf-8")
        self.domains_path.write_text("\n".join(clean_domains(domains)) + "\n", encoding="utf-8")


class MongoStore(ReferenceStore):
    """Single MongoDB document ``{_id, file, domains}`` holding both inputs."""

    def __init__(
        self,
        uri: str,
        database: str = "adstxt",
        collection: str = "adstxt",
        document_id: str = "ads_txt_file",
        client: Any | None = None,
    ) -> None:
        if client is None:
            client = MongoClient(uri, serverSelectionTimeoutMS=5 * 60 * 1000)
        self.client = client
        self.collection = self.client[database][collection]
        self.document_id = document_id

    def _document(self) -> dict:
        try:
            doc = self.collection.find_one({"_id": self.document_id})
        except PyMongoError as exc:
            raise StoreError(f"could not get ads.txt from db: {exc}") from exc
        if doc is None:
            raise StoreError(f"document {self.document_id!r} not found; run `adstxt-crawler seed` first")
        return doc

    def open_reference(self) -> IO[bytes]:
        content = self._document().get("file") or ""
        return io.BytesIO(str(content).encode("utf-8"))

    def load_domains(self) -> list[str]:
        return clean_domains(str(domain) for domain in self._document().get("domains") or [])

    def seed(self, reference_text: str, domains: Iterable[str]) -> None:
        payload = {"_id": self.document_id, "file": reference_text, "domains": clean_domains(domains)}
        try:
            self.collection.replace_one({"_id": self.document_id}, payload, upsert=True)
        except PyMongoError as exc:
            raise StoreError(f"failed seeding: {exc}") from exc

    def close(self) -> None:
        self.client.close()


def build_store(config: StoreConfig, base_dir: Path) -> ReferenceStore:
    """Create the store described by configuration; relative paths use ``base_dir``."""

    if config.type is StoreType.MONGODB:
        return MongoStore(
            config.mongo_url,
            database=config.database,
            collection=config.collection,
            document_id=config.document_id,
        )
    reference = config.reference_path
    domains = config.domains_path
    return FileStore(
        reference if reference.is_absolute() else base_dir / reference,
        domains if domains.is_absolute() else base_dir / domains,
    )


__all__ = ["FileStore", "MongoStore", "ReferenceStore", "build_store", "clean_domains"]
