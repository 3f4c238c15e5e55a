from .controllers import BaseController, ComputeController, ProxyController
from .crd_reflector import CRDReflector
from .polling import PollingLoop

__all__ = ["BaseController", "ComputeController", "ProxyController", "CRDReflector", "PollingLoop"]
