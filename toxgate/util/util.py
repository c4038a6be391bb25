import logging
import subprocess
from abc import ABCMeta
from functools import wraps
from time import time


class SubclassableOnce(type):
    """
    Metaclass for the extension points of toxgate: the class it is applied to
    accepts a single subclass, retrieved with :meth:`get_unique_subclass`.
    """

    TEST_MODE = False  # Several fake bindings coexist in the test suite

    def __init__(cls, name, bases, dct):
        super().__init__(name, bases, dct)
        for base in bases:
            if not isinstance(base, SubclassableOnce):
                continue
            if "_subclass" in vars(base) and not cls.TEST_MODE:
                raise RuntimeError(
                    f"{base.__name__} already has a subclass", vars(base)["_subclass"]
                )
            log.debug("Registering %s as the implementation of %s", cls, base)
            base._subclass = cls

    def get_unique_subclass(cls):
        try:
            return vars(cls)["_subclass"]
        except KeyError:
            raise AttributeError(f"No subclass of {cls.__name__} was defined")


class ABCSubclassableOnceAtMost(ABCMeta, SubclassableOnce):
    pass


def addLoggingLevel(
    levelName: str = "TRACE", levelNum: int = logging.DEBUG - 5, methodName=None
):
    """
    Register a custom logging level, by default TRACE below DEBUG.

    ``logging.<levelName>`` becomes the numeric level, and a ``<methodName>``
    (default: the lowercase level name) logging method is added to the
    logging module and to the current logger class. Calling this twice is
    harmless.
    """
    methodName = methodName or levelName.lower()

    for owner, attr in (
        (logging, levelName),
        (logging, methodName),
        (logging.getLoggerClass(), methodName),
    ):
        if hasattr(owner, attr):
            log.debug("%s.%s is already defined", owner.__name__, attr)
            return

    def log_method(self, message, *args, **kwargs):
        if self.isEnabledFor(levelNum):
            self._log(levelNum, message, args, **kwargs)

    def root_log_method(message, *args, **kwargs):
        logging.log(levelNum, message, *args, **kwargs)

    logging.addLevelName(levelNum, levelName)
    setattr(logging, levelName, levelNum)
    setattr(logging.getLoggerClass(), methodName, log_method)
    setattr(logging, methodName, root_log_method)


def get_version() -> str:
    try:
        commit = subprocess.check_output(
            ["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL
        ).decode()
    except (FileNotFoundError, subprocess.CalledProcessError):
        return "NO_VERSION"
    return "git-" + commit[:10]


def timeit(func):
    """
    Log how long a coroutine method took, with the instance's own logger.
    """

    @wraps(func)
    async def wrapped(self, *args, **kwargs):
        start = time()
        result = await func(self, *args, **kwargs)
        self.log.info("%s took %s ms", func.__name__, round((time() - start) * 1000))
        return result

    return wrapped


log = logging.getLogger(__name__)
