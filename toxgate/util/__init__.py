from .util import ABCSubclassableOnceAtMost, SubclassableOnce, addLoggingLevel

__all__ = [
    "SubclassableOnce",
    "ABCSubclassableOnceAtMost",
    "addLoggingLevel",
]
