from kio.bridge.commands import Operation, SurfaceCommand
from kio.bridge.dispatch import RequestContractError, WorkspaceBridge

__all__ = ["Operation", "RequestContractError", "SurfaceCommand", "WorkspaceBridge"]
