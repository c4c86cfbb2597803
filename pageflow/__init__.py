"""Pageflow - pagination of structured documents into fixed-size pages."""

from .editor import Editor
from .model import Node, ResolvedPos, resolve
from .options import PaginationOptions
from .pagination import ContentEntry, PaginationResult, repaginate
from .transaction import EditorState, TextSelection, Transaction

__all__ = [
    'Editor',
    'Node',
    'ResolvedPos',
    'resolve',
    'PaginationOptions',
    'ContentEntry',
    'PaginationResult',
    'repaginate',
    'EditorState',
    'TextSelection',
    'Transaction',
]
