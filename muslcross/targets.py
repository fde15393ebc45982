# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import dataclasses
import pathlib
import typing

import yaml

TARGETS_CONFIG = pathlib.Path(__file__).parent / "targets.yml"

TARGET_KEYS = {"triple", "default", "gcc_config"}


class ConfigError(Exception):
    """Represents an invalid target table or target selection."""


@dataclasses.dataclass(frozen=True)
class TargetSpec:
    option: str
    triple: str
    default: bool = False
    gcc_config: typing.Tuple[str, ...] = ()


class UniqueKeyLoader(yaml.SafeLoader):
    """A YAML loader that rejects duplicate mapping keys."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise ConfigError("duplicate key in target table: %s" % key)
            seen.add(key)

        return super().construct_mapping(node, deep=deep)


def parse_targets(data) -> typing.Tuple[TargetSpec, ...]:
    """Turn a parsed target table into ``TargetSpec`` instances.

    Declaration order is preserved. Triples must be unique.
    """
    if not isinstance(data, dict) or not data:
        raise ConfigError("target table must be a non-empty mapping")

    targets = []
    triples = set()

    for option, settings in data.items():
        if not isinstance(settings, dict) or "triple" not in settings:
            raise ConfigError("target %s does not define a triple" % option)

        unknown = set(settings) - TARGET_KEYS
        if unknown:
            raise ConfigError(
                "target %s has unknown keys: %s" % (option, ", ".join(sorted(unknown)))
            )

        triple = settings["triple"]
        if triple in triples:
            raise ConfigError("triple %s is declared more than once" % triple)
        triples.add(triple)

        targets.append(
            TargetSpec(
                option=str(option),
                triple=triple,
                default=bool(settings.get("default", False)),
                gcc_config=tuple(settings.get("gcc_config", [])),
            )
        )

    return tuple(targets)


def load_targets(yaml_path: pathlib.Path = TARGETS_CONFIG):
    """Obtain the declared targets from the targets YAML file."""
    with yaml_path.open("rb") as fh:
        return parse_targets(yaml.load(fh, Loader=UniqueKeyLoader))


def select_targets(targets, enable=(), disable=(), all_targets=False):
    """Resolve the targets to build.

    Starts from the default-enabled targets, adds ``enable`` and removes
    ``disable``. ``all_targets`` selects every declared target and takes
    precedence over ``disable``. Naming a target in both ``enable`` and
    ``disable`` is an error, as is naming an undeclared target.

    The result is in declaration order and may be empty when every default
    target is disabled.
    """
    options = [t.option for t in targets]
    enable = set(enable)
    disable = set(disable)

    unknown = (enable | disable) - set(options)
    if unknown:
        raise ConfigError("unknown target option: %s" % ", ".join(sorted(unknown)))

    conflicting = enable & disable
    if conflicting:
        raise ConfigError(
            "target option both enabled and disabled: %s"
            % ", ".join(sorted(conflicting))
        )

    if all_targets:
        return tuple(targets)

    chosen = {t.option for t in targets if t.default}
    chosen |= enable
    chosen -= disable

    return tuple(t for t in targets if t.option in chosen)


def parse_target_list(value):
    """Split a comma separated list of target options."""
    return [v.strip() for v in value.split(",") if v.strip()]
