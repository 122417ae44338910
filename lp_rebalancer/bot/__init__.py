from .orchestrator import Collaborators, CycleOrchestrator, build_collaborators
from .scheduler import CycleScheduler

__all__ = ["Collaborators", "CycleOrchestrator", "CycleScheduler", "build_collaborators"]
