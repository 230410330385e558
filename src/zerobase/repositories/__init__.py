from src.zerobase.repositories.base import BaseRepository
from src.zerobase.repositories.project import ProjectRepository

__all__ = [
    "BaseRepository",
    "ProjectRepository",
]
