"""
Turns a module (or class) of UPPER_CASE constants into configargparse arguments.

For an option ``NAME``, these companion attributes are recognised:

- ``NAME__DOC``: help text (mandatory)
- ``NAME__SHORT``: one-letter CLI flag
- ``NAME__DYNAMIC_DEFAULT``: the option is not required, its default is computed
  in :meth:`ConfigModule.update_dynamic_defaults`
"""

import logging
from functools import cached_property
from types import GenericAlias
from typing import Optional, Union, get_args, get_origin, get_type_hints

import configargparse


class Option:
    DOC_SUFFIX = "__DOC"
    DYNAMIC_DEFAULT_SUFFIX = "__DYNAMIC_DEFAULT"
    SHORT_SUFFIX = "__SHORT"

    def __init__(self, parent: "ConfigModule", name: str):
        self.parent = parent
        self.config_obj = parent.config_obj
        self.name = name

    @cached_property
    def doc(self) -> str:
        return getattr(self.config_obj, self.name + self.DOC_SUFFIX)

    @cached_property
    def required(self) -> bool:
        return not hasattr(
            self.config_obj, self.name + self.DYNAMIC_DEFAULT_SUFFIX
        ) and not hasattr(self.config_obj, self.name)

    @cached_property
    def default(self):
        return getattr(self.config_obj, self.name, None)

    @cached_property
    def short(self) -> Optional[str]:
        return getattr(self.config_obj, self.name + self.SHORT_SUFFIX, None)

    @cached_property
    def _hint(self):
        return get_type_hints(self.config_obj).get(self.name, type(self.default))

    @cached_property
    def nargs(self):
        if isinstance(self._hint, GenericAlias):
            args = get_args(self._hint)
            if args[-1] is Ellipsis:
                return "*"
            return len(args)
        return None

    @cached_property
    def type(self):
        type_ = self._hint
        if _is_optional(type_):
            return get_args(type_)[0]
        if isinstance(type_, GenericAlias):
            return get_args(type_)[0]
        return type_

    @cached_property
    def names(self) -> list[str]:
        res = ["--" + self.name.lower().replace("_", "-")]
        if s := self.short:
            res.append("-" + s)
        return res

    @cached_property
    def kwargs(self) -> dict:
        kwargs = dict(
            required=self.required,
            help=self.doc,
            env_var=self.parent.ENV_VAR_PREFIX + self.name,
        )
        if self.type is bool:
            kwargs["action"] = "store_false" if self.default else "store_true"
        else:
            kwargs["type"] = self.type
            if not self.required:
                kwargs["default"] = self.default
        if n := self.nargs:
            kwargs["nargs"] = n
        return kwargs


class ConfigModule:
    ENV_VAR_PREFIX = "TOXGATE_"

    def __init__(
        self, config_obj, parser: Optional[configargparse.ArgumentParser] = None
    ):
        self.config_obj = config_obj
        if parser is None:
            parser = configargparse.ArgumentParser()
        self.parser = parser

        self.add_options_to_parser()

    def _list_options(self) -> set[str]:
        return {
            o
            for o in (set(dir(self.config_obj)) | set(get_type_hints(self.config_obj)))
            if o.upper() == o and not o.startswith("_") and "__" not in o
        }

    @cached_property
    def options(self) -> list[Option]:
        return [Option(self, name) for name in self._list_options()]

    def add_options_to_parser(self):
        for o in sorted(self.options, key=lambda x: (not x.required, x.name)):
            self.parser.add_argument(*o.names, **o.kwargs)

    def set_conf(self, argv: Optional[list[str]] = None):
        """
        Parse argv (or sys.argv) and set the attributes of the config object.

        :return: the parsed namespace and the unrecognised arguments
        """
        if argv is not None:
            argv = self._strip_bool_values(argv)
        args, rest = self.parser.parse_known_args(argv)
        self.update_dynamic_defaults(args)
        for name in self._list_options():
            value = getattr(args, name.lower())
            log.debug("Setting '%s' to %r", name, value)
            setattr(self.config_obj, name, value)
        return args, rest

    def _strip_bool_values(self, argv: list[str]) -> list[str]:
        # INI files end up as pseudo-argv such as --some-bool=true, but boolean
        # options are store_true/store_false flags, which flip the default.
        bools = {o.name: o for o in self.options if o.type is bool}
        result = []
        i = 0
        while i < len(argv):
            arg = argv[i]
            i += 1
            flag, sep, value = arg.partition("=")
            opt = bools.get(_argv_to_option_name(flag))
            if opt is None:
                result.append(arg)
                continue
            if not sep and i < len(argv) and argv[i].lower() in _BOOL_WORDS:
                sep, value = "=", argv[i]
                i += 1
            wanted = value.lower() in _TRUEISH if sep else True
            if wanted != bool(opt.default):
                result.append(flag)
        log.debug("Removed boolean values from %s to %s", argv, result)
        return result

    def update_dynamic_defaults(self, args):
        pass


def _is_optional(t) -> bool:
    if get_origin(t) is Union:
        args = get_args(t)
        if len(args) == 2 and isinstance(None, args[1]):
            return True
    return False


def _argv_to_option_name(arg: str) -> str:
    return arg.upper().removeprefix("--").replace("-", "_")


_TRUEISH = {"true", "1", "on", "yes", "enabled"}
_BOOL_WORDS = _TRUEISH | {"false", "0", "off", "no", "disabled"}


log = logging.getLogger(__name__)
