"""Services: state reads, prices, execution, monitoring and the chat surface."""
from .chat import ChatService
from .executor import ActionExecutor
from .monitor import CycleReport, Monitor
from .price_service import PriceService
from .scheduler import Scheduler
from .sessions import SessionStore
from .state_reader import StateReader
from .transactions import TransactionPreparer

__all__ = [
    "ActionExecutor",
    "ChatService",
    "CycleReport",
    "Monitor",
    "PriceService",
    "Scheduler",
    "SessionStore",
    "StateReader",
    "TransactionPreparer",
]
