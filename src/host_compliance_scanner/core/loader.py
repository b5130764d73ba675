"""
Load control definitions from YAML profiles

A profile is a mapping with a ``controls`` list (or the list itself)::

    controls:
      - id: shadow-permissions
        title: /etc/shadow is protected
        impact: 1.0
        tags: [files]
        checks:
          - resource: file
            args: /etc/shadow
            expect:
              - exist: true
              - {its: mode, cmp: "0640"}
              - {its: writable_by_others, be_true: false}
          - one_of:
              - resource: service
                args: rsyslog
                expect: [{its: running, be_true: true}]
              - resource: service
                args: syslog-ng
                expect: [{its: running, be_true: true}]

Any check node, and the control itself, may carry an ``only_if`` gate such
as ``{resource: command, args: systemctl, exist: true}``.
"""

from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from .assertion import UNARY_PREDICATES, Assertion, Predicate, ResourceRef
from .errors import ConfigurationError
from .framework import Control
from .group import AssertionGroup, Combinator, Node

PREDICATE_KEYS = {predicate.value: predicate for predicate in Predicate}
_EXPECTATION_KEYS = {"its", "should_not"} | set(PREDICATE_KEYS)
_REF_KEYS = {"resource", "args"}


def load_controls(path: Union[str, Path]) -> List[Control]:
    """Load controls from a YAML file or a directory of YAML files"""
    p = Path(path)
    if p.is_file():
        files = [p]
    elif p.is_dir():
        files = sorted(p.rglob("*.yml")) + sorted(p.rglob("*.yaml"))
    else:
        raise ConfigurationError(f"Controls path not found: {path}")

    controls = []
    for f in files:
        try:
            data = yaml.safe_load(f.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load {f}: {e}") from None
        controls.extend(parse_controls(data, source=str(f)))
    return controls


def parse_controls(data: Any, source: str = "<data>") -> List[Control]:
    """Build controls from already-parsed YAML data"""
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("controls", [])
    if not isinstance(data, list):
        raise ConfigurationError(f"{source}: expected a list of controls")
    return [parse_control(item, source) for item in data]


def parse_control(item: Any, source: str = "<data>") -> Control:
    if not isinstance(item, dict):
        raise ConfigurationError(f"{source}: control definition must be a mapping, got {item!r}")
    control_id = item.get("id")
    if not control_id:
        raise ConfigurationError(f"{source}: control without 'id'")

    try:
        checks = item.get("checks") or []
        if not isinstance(checks, list):
            raise ConfigurationError("'checks' must be a list")
        tags = item.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]

        return Control(
            control_id=str(control_id),
            title=str(item.get("title", "")),
            description=str(item.get("desc", item.get("description", ""))),
            impact=float(item.get("impact", 0.5)),
            tags=frozenset(str(tag) for tag in tags),
            root=AssertionGroup(children=tuple(_parse_node(node) for node in checks)),
            only_if=_parse_gate(item["only_if"]) if "only_if" in item else None,
        )
    except ConfigurationError as e:
        raise ConfigurationError(f"{source}: control {control_id}: {e}") from None
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{source}: control {control_id}: {e}") from None


def _parse_node(node: Any) -> Node:
    if not isinstance(node, dict):
        raise ConfigurationError(f"check must be a mapping, got {node!r}")

    gate = _parse_gate(node["only_if"]) if "only_if" in node else None

    for key, combinator in (("one_of", Combinator.ONE_OF), ("all", Combinator.ALL)):
        if key in node:
            children = node[key]
            if not isinstance(children, list):
                raise ConfigurationError(f"'{key}' must be a list")
            return AssertionGroup(
                children=tuple(_parse_node(child) for child in children),
                combinator=combinator,
                gate=gate,
                label=key,
            )

    if "resource" in node:
        ref = _parse_ref(node)
        expectations = node.get("expect") or []
        if not isinstance(expectations, list):
            raise ConfigurationError(f"{ref}: 'expect' must be a list")
        return AssertionGroup(
            children=tuple(_parse_expectation(ref, entry) for entry in expectations),
            gate=gate,
            label=str(ref),
        )

    raise ConfigurationError(f"check needs 'resource', 'one_of' or 'all': {node!r}")


def _parse_ref(node: Dict[str, Any]) -> ResourceRef:
    kind = node.get("resource")
    if not isinstance(kind, str) or not kind:
        raise ConfigurationError(f"'resource' must be a kind name, got {kind!r}")
    args = node.get("args", [])
    if not isinstance(args, list):
        args = [args]
    return ResourceRef(kind=kind, args=tuple(args))


def _parse_gate(entry: Any) -> Assertion:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"'only_if' must be a mapping, got {entry!r}")
    ref = _parse_ref(entry)
    return _parse_expectation(ref, {k: v for k, v in entry.items() if k not in _REF_KEYS})


def _parse_expectation(ref: ResourceRef, entry: Any) -> Assertion:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"{ref}: expectation must be a mapping, got {entry!r}")

    unknown = set(entry) - _EXPECTATION_KEYS
    if unknown:
        raise ConfigurationError(f"{ref}: unknown expectation keys {sorted(unknown)}")

    keys = [key for key in entry if key in PREDICATE_KEYS]
    if len(keys) != 1:
        raise ConfigurationError(
            f"{ref}: expectation needs exactly one of {sorted(PREDICATE_KEYS)}, got {keys}"
        )
    predicate = PREDICATE_KEYS[keys[0]]
    expected = entry[keys[0]]
    negate = bool(entry.get("should_not", False))

    if predicate in UNARY_PREDICATES:
        if not isinstance(expected, bool):
            raise ConfigurationError(f"{ref}: '{predicate.value}' takes true or false")
        if not expected:
            negate = not negate
        expected = None
    elif isinstance(expected, list):
        expected = tuple(expected)

    prop = entry.get("its")
    if prop is None:
        if predicate != Predicate.EXISTS:
            raise ConfigurationError(f"{ref}: '{predicate.value}' needs 'its'")
        prop = "exists"

    return Assertion(
        resource=ref,
        property=str(prop),
        predicate=predicate,
        expected=expected,
        negate=negate,
    )
