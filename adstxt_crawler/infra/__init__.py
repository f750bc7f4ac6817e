"""Infra layer utilities (input stores, report delivery)."""

from .slack import SlackUploader
from .store import FileStore, MongoStore, ReferenceStore, build_store, clean_domains

__all__ = ["FileStore", "MongoStore", "ReferenceStore", "SlackUploader", "build_store", "clean_domains"]
