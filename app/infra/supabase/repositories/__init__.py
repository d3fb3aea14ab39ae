"""Repository exports"""
from .base import OwnedRepository
from .todos import TodoRepository

__all__ = [
    'OwnedRepository',
    'TodoRepository',
]
