"""Common FastAPI dependencies."""

from fastapi import Depends

from . import auth
from .classifier import PriorityClassifier, classifier
from .constants import Role
from .models import User
from .schemas import AdministratorProfile, ResidentProfile, WorkerProfile, to_profile


def get_classifier() -> PriorityClassifier:
    return classifier


async def current_resident(user: User = Depends(auth.require_role(Role.RESIDENT))) -> ResidentProfile:
    return to_profile(user)


async def current_worker(user: User = Depends(auth.require_role(Role.WORKER))) -> WorkerProfile:
    return to_profile(user)


async def current_administrator(user: User = Depends(auth.require_role(Role.ADMINISTRATOR))) -> AdministratorProfile:
    return to_profile(user)


__all__ = ["get_classifier", "current_resident", "current_worker", "current_administrator"]
