from .util.util import get_version

# this should be modified before publish, but if someone cloned from the repo,
# it can help
__version__ = get_version()
