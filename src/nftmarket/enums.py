from enum import Enum


class EventKind(Enum):
    """Kind of event emitted by the marketplace"""

    offered = 'offered'
    bought = 'bought'


class EventLogKind(Enum):
    """Enum for `events.kind` config field"""

    memory = 'memory'
    jsonl = 'jsonl'
    database = 'database'


class ScenarioAction(Enum):
    """Steps a scenario file may contain"""

    deposit = 'deposit'
    mint = 'mint'
    approve = 'approve'
    list = 'list'
    buy = 'buy'
