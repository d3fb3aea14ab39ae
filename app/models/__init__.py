"""Domain models for the application"""
from .todo import MUTABLE_FIELDS, Priority, Todo, TodoCreate, TodoUpdate

__all__ = [
    'MUTABLE_FIELDS', 'Priority', 'Todo', 'TodoCreate', 'TodoUpdate',
]
