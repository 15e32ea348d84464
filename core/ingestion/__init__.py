"""Data ingestion: scan → parse → manifest"""
from .loader import CodebaseLoader, FileInventory, is_test_path
from .parser import CodeParser, FunctionSpan, ImportRef
from .manifest import DependencyManifest, LockedPackage, load_manifest

__all__ = [
    "CodebaseLoader",
    "FileInventory",
    "is_test_path",
    "CodeParser",
    "FunctionSpan",
    "ImportRef",
    "DependencyManifest",
    "LockedPackage",
    "load_manifest",
]
