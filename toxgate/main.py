"""
toxgate can be configured via CLI args, environment variables and/or INI files.

To use env vars, use this convention: ``--home-dir`` becomes ``TOXGATE_HOME_DIR``.

Everything in ``/etc/toxgate/conf.d/*`` is automatically used.
Use the long version of the CLI arg without the double dash prefix inside an
INI file, eg ``debug=true``.
"""

import asyncio
import importlib
import logging
import os
import re
import signal
from pathlib import Path

import configargparse

from .__version__ import __version__
from .core import config
from .gateway import Gateway
from .network import ToxNetwork
from .util.conf import ConfigModule
from .util.db import account_store


class MainConfig(ConfigModule):
    def update_dynamic_defaults(self, args):
        # force=True is needed in case we call a logger before this is reached,
        # or basicConfig has no effect
        logging.basicConfig(
            level=args.loglevel,
            filename=args.log_file,
            force=True,
            format=args.log_format,
        )

        if args.home_dir is None:
            args.home_dir = Path("/var/lib/toxgate") / str(args.jid)

        if args.user_jid_validator is None:
            args.user_jid_validator = ".*@" + re.escape(args.server)


class SigTermInterrupt(Exception):
    pass


def get_configurator():
    p = configargparse.ArgumentParser(
        default_config_files=os.getenv(
            "TOXGATE_CONF_DIR", "/etc/toxgate/conf.d/*.conf"
        ).split(":"),
        description=__doc__,
    )
    p.add_argument(
        "-c",
        "--config",
        help="Path to a INI config file.",
        env_var="TOXGATE_CONFIG",
        is_config_file=True,
    )
    p.add_argument(
        "-q",
        "--quiet",
        help="loglevel=WARNING",
        action="store_const",
        dest="loglevel",
        const=logging.WARNING,
        default=logging.INFO,
        env_var="TOXGATE_QUIET",
    )
    p.add_argument(
        "-d",
        "--debug",
        help="loglevel=DEBUG",
        action="store_const",
        dest="loglevel",
        const=logging.DEBUG,
        env_var="TOXGATE_DEBUG",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return MainConfig(config, p)


def get_parser():
    return get_configurator().parser


def configure(argv=None):
    configurator = get_configurator()
    _args, unknown_argv = configurator.set_conf(argv)

    if unknown_argv:
        raise RuntimeError("Some arguments have not been recognized", unknown_argv)

    if not (h := config.HOME_DIR).exists():
        logging.info("Creating directory '%s'", h)
        os.makedirs(h)

    account_store.set_file(config.HOME_DIR / "toxgate.db")


def handle_sigterm(_signum, _frame):
    logging.info("Caught SIGTERM")
    raise SigTermInterrupt


def main():
    signal.signal(signal.SIGTERM, handle_sigterm)

    configure()
    logging.info("Starting toxgate version %s", __version__)

    network_module = importlib.import_module(config.NETWORK_MODULE)
    logging.info(
        "Using network module: '%s' version %s",
        config.NETWORK_MODULE,
        getattr(network_module, "__version__", "No version"),
    )

    gateway = Gateway(ToxNetwork.get_unique_subclass(), account_store)
    gateway.connect()

    return_code = 0
    try:
        gateway.loop.run_forever()
    except KeyboardInterrupt:
        logging.debug("Received SIGINT")
    except SigTermInterrupt:
        logging.debug("Received SIGTERM")
    except SystemExit as e:
        return_code = e.code  # type: ignore
        logging.debug("Exit called")
    except Exception as e:
        return_code = 2
        logging.exception("Exception in __main__")
        logging.exception(e)
    finally:
        if gateway.has_crashed:
            if return_code != 0:
                logging.warning("Return code has been set twice. Please report this.")
            return_code = 3
        if gateway.is_connected():
            logging.debug("Gateway is connected, cleaning up")
            gateway.loop.run_until_complete(asyncio.gather(*gateway.shutdown()))
            gateway.disconnect()
            gateway.loop.run_until_complete(gateway.disconnected)
        else:
            logging.debug("Gateway is not connected, no need to clean up")
        account_store.close()
        logging.info("Successful clean shut down")
    logging.debug("Exiting with code %s", return_code)
    exit(return_code)
