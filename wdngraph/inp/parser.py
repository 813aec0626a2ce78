"""Read EPANET INP text into a hydraulic model.

Reading is best effort: problems with individual records (missing fields,
malformed numbers, references to unknown nodes, duplicate ids, missing
coordinates) are collected as :class:`~wdngraph.inp.issues.ValidationIssue`
entries and the offending record is skipped. Only input that cannot be read
as INP at all raises :class:`~wdngraph.errors.ParseError`:

- binary content (NUL bytes);
- no section header anywhere;
- data lines before the first section header;
- a malformed section header.

INP ids become asset ids and labels. A link whose INP id collides with a
node id (allowed by EPANET, which keeps separate namespaces) gets a freshly
generated asset id and keeps the INP id as its label.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from wdngraph.config import ModelConfig
from wdngraph.errors import ParseError
from wdngraph.inp.issues import IssueKind, ParserIssues
from wdngraph.logging import get_logger
from wdngraph.model.assets import (
    Asset,
    AssetType,
    Junction,
    Pipe,
    PipeStatus,
    Pump,
    PumpDefinition,
    PumpStatus,
    Reservoir,
    Tank,
    Valve,
    ValveKind,
    ValveStatus,
)
from wdngraph.model.hydraulic_model import (
    Curve,
    HydraulicModel,
    initialize_hydraulic_model,
)
from wdngraph.model.moment import Moment, apply_moment
from wdngraph.types import Position
from wdngraph.utils.ids import IdGenerator, VersionGenerator

logger = get_logger(__name__)

SUPPORTED_SECTIONS = frozenset(
    {
        "TITLE",
        "JUNCTIONS",
        "RESERVOIRS",
        "TANKS",
        "PIPES",
        "PUMPS",
        "VALVES",
        "DEMANDS",
        "STATUS",
        "PATTERNS",
        "CURVES",
        "OPTIONS",
        "TIMES",
        "COORDINATES",
        "VERTICES",
    }
)

# Every section name EPANET defines; in [TITLE] only these start a new section
EPANET_SECTIONS = SUPPORTED_SECTIONS | frozenset(
    {
        "CONTROLS",
        "RULES",
        "ENERGY",
        "EMITTERS",
        "QUALITY",
        "SOURCES",
        "REACTIONS",
        "MIXING",
        "REPORT",
        "TAGS",
        "LABELS",
        "BACKDROP",
        "LEAKAGE",
        "END",
    }
)

# Keywords made of two words in [OPTIONS] and [TIMES]
TWO_WORD_KEYS = frozenset(
    {
        "DEMAND MULTIPLIER",
        "DEMAND MODEL",
        "EMITTER EXPONENT",
        "SPECIFIC GRAVITY",
        "MINIMUM PRESSURE",
        "REQUIRED PRESSURE",
        "PRESSURE EXPONENT",
        "HEADLOSS ERROR",
        "FLOWCHANGE",
        "HYDRAULIC TIMESTEP",
        "QUALITY TIMESTEP",
        "RULE TIMESTEP",
        "PATTERN TIMESTEP",
        "PATTERN START",
        "REPORT TIMESTEP",
        "REPORT START",
        "START CLOCKTIME",
    }
)

_HEADER = re.compile(r"^\[\s*([A-Za-z_]+)\s*\]")
_CURVE_TYPE = re.compile(r"^;\s*(PUMP|EFFICIENCY|VOLUME|HEADLOSS)\s*:", re.IGNORECASE)

# Curve id placeholder for pumps and GPV valves without a curve
NO_CURVE = "*"

_LON_RANGE = (-180.0, 180.0)
_LAT_RANGE = (-90.0, 90.0)


class _RecordError(Exception):
    """A single record cannot be used; becomes an issue, not a failure."""

    def __init__(self, kind: IssueKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass
class _Record:
    name: str
    line: int
    values: Dict[str, object] = field(default_factory=dict)


def _number(token: str, what: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise _RecordError(
            IssueKind.INVALID_VALUE, f"Invalid {what} '{token}'"
        ) from None


def _require(tokens: List[str], count: int, what: str) -> None:
    if len(tokens) < count:
        raise _RecordError(
            IssueKind.MISSING_FIELDS,
            f"{what} needs at least {count} fields, got {len(tokens)}",
        )


def _position(tokens: List[str]) -> Position:
    return (_number(tokens[1], "x coordinate"), _number(tokens[2], "y coordinate"))


def _is_known_header(line: str) -> bool:
    match = _HEADER.match(line)
    return match is not None and match.group(1).upper() in EPANET_SECTIONS


def _choice(token: str, choices: Dict[str, object], what: str) -> object:
    try:
        return choices[token.upper()]
    except KeyError:
        raise _RecordError(
            IssueKind.INVALID_VALUE, f"Invalid {what} '{token}'"
        ) from None


_PIPE_STATUSES = {
    "OPEN": PipeStatus.OPEN,
    "CLOSED": PipeStatus.CLOSED,
    "CV": PipeStatus.CV,
}
_VALVE_KINDS = {kind.name: kind for kind in ValveKind}
_YES_NO = {"YES": True, "NO": False, "TRUE": True, "FALSE": False}


class _InpReader:
    """Collects section records line by line, then builds the model."""

    def __init__(self) -> None:
        self.issues = ParserIssues()
        self.title: List[str] = []
        self.nodes: Dict[str, _Record] = {}
        self.links: Dict[str, _Record] = {}
        self.demands: List[Tuple[str, float, Optional[str], int]] = []
        self.statuses: List[Tuple[str, str, int]] = []
        self.patterns: Dict[str, List[float]] = {}
        self.curves: Dict[str, List[Tuple[float, float]]] = {}
        self.curve_types: Dict[str, str] = {}
        self.options: Dict[str, str] = {}
        self.times: Dict[str, str] = {}
        self.coordinates: Dict[str, Tuple[Position, int]] = {}
        self.vertices: Dict[str, List[Position]] = {}
        self._pending_curve_type: Optional[str] = None
        self._handlers: Dict[str, Callable[[List[str], int], None]] = {
            "JUNCTIONS": self._junction,
            "RESERVOIRS": self._reservoir,
            "TANKS": self._tank,
            "PIPES": self._pipe,
            "PUMPS": self._pump,
            "VALVES": self._valve,
            "DEMANDS": self._demand,
            "STATUS": self._status,
            "PATTERNS": self._pattern,
            "CURVES": self._curve,
            "OPTIONS": self._option,
            "TIMES": self._time,
            "COORDINATES": self._coordinate,
            "VERTICES": self._vertex,
        }

    #
    # Line scanning
    #
    def read(self, text: str) -> None:
        nul = text.find("\x00")
        if nul >= 0:
            raise ParseError(
                "Input contains binary data and is not INP text",
                line=text.count("\n", 0, nul) + 1,
            )

        section: Optional[str] = None
        seen_header = False
        for number, raw in enumerate(text.lstrip("\ufeff").splitlines(), start=1):
            stripped = raw.strip()
            if section == "TITLE" and not _is_known_header(stripped):
                # Title text is free form: brackets and semicolons are kept
                if stripped and not stripped.startswith(";"):
                    self.title.append(stripped)
                continue
            if stripped.startswith("["):
                match = _HEADER.match(stripped)
                if match is None:
                    raise ParseError(f"Malformed section header '{stripped}'", number)
                section = match.group(1).upper()
                seen_header = True
                if section == "END":
                    break
                if section not in SUPPORTED_SECTIONS:
                    self.issues.add(
                        IssueKind.UNSUPPORTED_SECTION,
                        f"Section [{section}] is not supported and was skipped",
                        line=number,
                    )
                self._pending_curve_type = None
                continue

            if section == "CURVES" and stripped.startswith(";"):
                match = _CURVE_TYPE.match(stripped)
                if match is not None:
                    self._pending_curve_type = match.group(1).upper()
                continue

            content = stripped.split(";", 1)[0].strip()
            if not content:
                continue
            if section is None:
                raise ParseError("Data found before the first section header", number)
            handler = self._handlers.get(section)
            if handler is None:
                continue
            try:
                handler(content.split(), number)
            except _RecordError as exc:
                affected = content.split()[0]
                self.issues.add(
                    exc.kind, exc.message, affected_id=affected, line=number
                )

        if not seen_header:
            raise ParseError("No INP section header found")

    #
    # Section handlers
    #
    def _add_record(
        self, family: Dict[str, _Record], name: str, line: int, **values: object
    ) -> None:
        if name in family:
            raise _RecordError(
                IssueKind.DUPLICATE_ID,
                f"Duplicate id {name} (first defined on line {family[name].line})",
            )
        family[name] = _Record(name, line, values)

    def _junction(self, tokens: List[str], line: int) -> None:
        _require(tokens, 2, "Junction")
        self._add_record(
            self.nodes,
            tokens[0],
            line,
            kind="junction",
            elevation=_number(tokens[1], "elevation"),
            base_demand=_number(tokens[2], "demand") if len(tokens) > 2 else 0.0,
            demand_pattern=tokens[3] if len(tokens) > 3 else None,
        )

    def _reservoir(self, tokens: List[str], line: int) -> None:
        _require(tokens, 2, "Reservoir")
        self._add_record(
            self.nodes,
            tokens[0],
            line,
            kind="reservoir",
            elevation=_number(tokens[1], "head"),
            head_pattern=tokens[2] if len(tokens) > 2 else None,
        )

    def _tank(self, tokens: List[str], line: int) -> None:
        _require(tokens, 6, "Tank")
        volume_curve = tokens[7] if len(tokens) > 7 else None
        if volume_curve == "*":
            volume_curve = None
        overflow = False
        if len(tokens) > 8:
            overflow = _choice(tokens[8], _YES_NO, "overflow flag")
        self._add_record(
            self.nodes,
            tokens[0],
            line,
            kind="tank",
            elevation=_number(tokens[1], "elevation"),
            initial_level=_number(tokens[2], "initial level"),
            min_level=_number(tokens[3], "minimum level"),
            max_level=_number(tokens[4], "maximum level"),
            diameter=_number(tokens[5], "diameter"),
            min_volume=_number(tokens[6], "minimum volume") if len(tokens) > 6 else 0.0,
            volume_curve=volume_curve,
            overflow=overflow,
        )

    def _pipe(self, tokens: List[str], line: int) -> None:
        _require(tokens, 6, "Pipe")
        status = PipeStatus.OPEN
        if len(tokens) > 7:
            status = _choice(tokens[7], _PIPE_STATUSES, "pipe status")
        self._add_record(
            self.links,
            tokens[0],
            line,
            kind="pipe",
            connections=(tokens[1], tokens[2]),
            length=_number(tokens[3], "length"),
            diameter=_number(tokens[4], "diameter"),
            roughness=_number(tokens[5], "roughness"),
            minor_loss=_number(tokens[6], "minor loss") if len(tokens) > 6 else 0.0,
            status=status,
        )

    def _pump(self, tokens: List[str], line: int) -> None:
        _require(tokens, 5, "Pump")
        values: Dict[str, object] = {
            "kind": "pump",
            "connections": (tokens[1], tokens[2]),
        }
        params = tokens[3:]
        if len(params) % 2:
            raise _RecordError(
                IssueKind.MISSING_FIELDS, f"Pump keyword '{params[-1]}' has no value"
            )
        for keyword, value in zip(params[::2], params[1::2]):
            keyword = keyword.upper()
            if keyword == "HEAD":
                values["definition"] = PumpDefinition.CURVE
                values["curve_id"] = None if value == NO_CURVE else value
            elif keyword == "POWER":
                values["definition"] = PumpDefinition.POWER
                values["power"] = _number(value, "power")
            elif keyword == "SPEED":
                values["speed"] = _number(value, "speed")
            elif keyword == "PATTERN":
                values["speed_pattern"] = value
            else:
                raise _RecordError(
                    IssueKind.INVALID_VALUE, f"Unknown pump keyword '{keyword}'"
                )
        if "definition" not in values:
            raise _RecordError(
                IssueKind.MISSING_FIELDS, "Pump needs a HEAD curve or a POWER value"
            )
        self._add_record(self.links, tokens[0], line, **values)

    def _valve(self, tokens: List[str], line: int) -> None:
        _require(tokens, 6, "Valve")
        kind = _choice(tokens[4], _VALVE_KINDS, "valve type")
        values: Dict[str, object] = {
            "kind": "valve",
            "connections": (tokens[1], tokens[2]),
            "diameter": _number(tokens[3], "diameter"),
            "valve_kind": kind,
            "minor_loss": _number(tokens[6], "minor loss") if len(tokens) > 6 else 0.0,
        }
        if kind == ValveKind.GPV:
            values["curve_id"] = None if tokens[5] == NO_CURVE else tokens[5]
        else:
            values["setting"] = _number(tokens[5], "setting")
        self._add_record(self.links, tokens[0], line, **values)

    def _demand(self, tokens: List[str], line: int) -> None:
        _require(tokens, 2, "Demand")
        pattern = tokens[2] if len(tokens) > 2 else None
        self.demands.append((tokens[0], _number(tokens[1], "demand"), pattern, line))

    def _status(self, tokens: List[str], line: int) -> None:
        _require(tokens, 2, "Status")
        self.statuses.append((tokens[0], tokens[1], line))

    def _pattern(self, tokens: List[str], line: int) -> None:
        multipliers = [_number(t, "multiplier") for t in tokens[1:]]
        self.patterns.setdefault(tokens[0], []).extend(multipliers)

    def _curve(self, tokens: List[str], line: int) -> None:
        _require(tokens, 3, "Curve point")
        point = (_number(tokens[1], "x value"), _number(tokens[2], "y value"))
        curve_id = tokens[0]
        if curve_id not in self.curves:
            self.curves[curve_id] = []
            if self._pending_curve_type:
                self.curve_types[curve_id] = self._pending_curve_type
        self._pending_curve_type = None
        self.curves[curve_id].append(point)

    def _key_value(self, tokens: List[str], table: Dict[str, str]) -> None:
        if len(tokens) >= 2 and f"{tokens[0]} {tokens[1]}".upper() in TWO_WORD_KEYS:
            key, rest = f"{tokens[0]} {tokens[1]}".upper(), tokens[2:]
        else:
            key, rest = tokens[0].upper(), tokens[1:]
        table[key] = " ".join(rest)

    def _option(self, tokens: List[str], line: int) -> None:
        self._key_value(tokens, self.options)

    def _time(self, tokens: List[str], line: int) -> None:
        self._key_value(tokens, self.times)

    def _coordinate(self, tokens: List[str], line: int) -> None:
        _require(tokens, 3, "Coordinate")
        position = _position(tokens)
        self.coordinates[tokens[0]] = (position, line)

    def _vertex(self, tokens: List[str], line: int) -> None:
        _require(tokens, 3, "Vertex")
        position = _position(tokens)
        self.vertices.setdefault(tokens[0], []).append(position)

    #
    # Model assembly
    #
    def build(
        self,
        config: Optional[ModelConfig],
        id_generator: Optional[IdGenerator],
        version_generator: Optional[VersionGenerator],
    ) -> HydraulicModel:
        id_generator = id_generator or IdGenerator()
        model = initialize_hydraulic_model(
            config=config,
            units=self.options.get("UNITS", "GPM"),
            headloss_formula=self.options.get("HEADLOSS", "H-W"),
            id_generator=id_generator,
            version_generator=version_generator,
        )
        model.options.update(self.options)
        model.times.update(self.times)
        model.title = list(self.title)
        model.patterns = {k: tuple(v) for k, v in self.patterns.items()}
        model.curves = {
            curve_id: Curve(curve_id, tuple(points), self.curve_types.get(curve_id))
            for curve_id, points in self.curves.items()
        }

        for name in list(self.nodes) + list(self.links):
            id_generator.observe(name)

        self._apply_demands()
        nodes = self._build_nodes()
        links = self._build_links(nodes, id_generator)
        self._apply_statuses(links)
        self._check_geocoding(nodes)

        apply_moment(
            model,
            Moment(
                note="Import INP",
                put_assets=tuple(nodes.values()) + tuple(links.values()),
            ),
        )
        logger.info(
            "Imported INP: %d nodes, %d links, %d issues",
            len(nodes),
            len(links),
            len(self.issues),
        )
        return model

    def _apply_demands(self) -> None:
        seen: Dict[str, int] = {}
        for name, demand, pattern, line in self.demands:
            record = self.nodes.get(name)
            if record is None or record.values["kind"] != "junction":
                self.issues.add(
                    IssueKind.UNKNOWN_ASSET,
                    f"Demand for unknown junction {name}",
                    affected_id=name,
                    line=line,
                )
                continue
            count = seen.get(name, 0)
            seen[name] = count + 1
            if count == 0:
                record.values["base_demand"] = demand
                record.values["demand_pattern"] = pattern
                continue
            record.values["base_demand"] += demand
            if count == 1:
                self.issues.add(
                    IssueKind.MULTIPLE_DEMANDS,
                    f"Junction {name} has several demand categories; they were summed",
                    affected_id=name,
                    line=line,
                )

    def _build_nodes(self) -> Dict[str, Asset]:
        nodes: Dict[str, Asset] = {}
        for name, (_, line) in self.coordinates.items():
            if name not in self.nodes:
                self.issues.add(
                    IssueKind.UNKNOWN_ASSET,
                    f"Coordinates for unknown node {name}",
                    affected_id=name,
                    line=line,
                )
        for name, record in self.nodes.items():
            values = dict(record.values)
            kind = values.pop("kind")
            coordinates = None
            if name in self.coordinates:
                coordinates = self.coordinates[name][0]
            else:
                self.issues.add(
                    IssueKind.MISSING_COORDINATES,
                    f"Node {name} has no coordinates",
                    affected_id=name,
                    line=record.line,
                )
            cls = {"junction": Junction, "reservoir": Reservoir, "tank": Tank}[kind]
            nodes[name] = cls(id=name, label=name, coordinates=coordinates, **values)
        return nodes

    def _build_links(
        self, nodes: Dict[str, Asset], id_generator: IdGenerator
    ) -> Dict[str, Asset]:
        links: Dict[str, Asset] = {}
        taken = set(nodes)
        for name in self.vertices:
            if name not in self.links:
                self.issues.add(
                    IssueKind.UNKNOWN_ASSET,
                    f"Vertices for unknown link {name}",
                    affected_id=name,
                )
        for name, record in self.links.items():
            values = dict(record.values)
            kind = values.pop("kind")
            start, end = values["connections"]
            missing = [n for n in (start, end) if n not in nodes]
            if missing:
                self.issues.add(
                    IssueKind.UNKNOWN_NODE,
                    f"Link {name} references unknown node {missing[0]}",
                    affected_id=name,
                    line=record.line,
                )
                continue
            asset_id = name
            while asset_id in taken:
                asset_id = id_generator.new_id()
            taken.add(asset_id)

            coordinates = None
            start_xy = nodes[start].coordinates
            end_xy = nodes[end].coordinates
            if start_xy is not None and end_xy is not None:
                coordinates = (start_xy, *self.vertices.get(name, ()), end_xy)
            cls = {"pipe": Pipe, "pump": Pump, "valve": Valve}[kind]
            links[name] = cls(
                id=asset_id, label=name, coordinates=coordinates, **values
            )
        return links

    def _apply_statuses(self, links: Dict[str, Asset]) -> None:
        for name, token, line in self.statuses:
            link = links.get(name)
            if link is None:
                self.issues.add(
                    IssueKind.UNKNOWN_ASSET,
                    f"Status for unknown link {name}",
                    affected_id=name,
                    line=line,
                )
                continue
            word = token.upper()
            try:
                if link.type == AssetType.PIPE:
                    status = _choice(word, _PIPE_STATUSES, "pipe status")
                    links[name] = replace(link, status=status)
                elif link.type == AssetType.PUMP:
                    if word in ("OPEN", "CLOSED"):
                        status = PumpStatus.ON if word == "OPEN" else PumpStatus.OFF
                        links[name] = replace(link, status=status)
                    else:
                        links[name] = replace(link, speed=_number(token, "pump speed"))
                elif word in ("OPEN", "CLOSED", "ACTIVE"):
                    links[name] = replace(link, status=ValveStatus(word.lower()))
                else:
                    links[name] = replace(link, setting=_number(token, "valve setting"))
            except _RecordError as exc:
                self.issues.add(exc.kind, exc.message, affected_id=name, line=line)

    def _check_geocoding(self, nodes: Dict[str, Asset]) -> None:
        for node in nodes.values():
            if node.coordinates is None:
                continue
            x, y = node.coordinates
            if not (
                _LON_RANGE[0] <= x <= _LON_RANGE[1]
                and _LAT_RANGE[0] <= y <= _LAT_RANGE[1]
            ):
                self.issues.add(
                    IssueKind.GEOCODING_NOT_SUPPORTED,
                    "Coordinates are not longitude/latitude (e.g. node "
                    f"{node.id}); projected coordinates are kept as they are",
                    affected_id=node.id,
                )
                return


def parse_inp(
    text: str,
    config: Optional[ModelConfig] = None,
    id_generator: Optional[IdGenerator] = None,
    version_generator: Optional[VersionGenerator] = None,
) -> Tuple[HydraulicModel, ParserIssues]:
    """Parse INP text into a model and the list of non-fatal issues.

    Args:
        text: The INP document.
        config: Engine configuration for the new model.
        id_generator: Generator for asset ids that must be invented.
        version_generator: Generator for model versions.

    Returns:
        ``(model, issues)``.

    Raises:
        ParseError: If the text is structurally unreadable; no partial model
            is returned.
    """
    reader = _InpReader()
    reader.read(text)
    model = reader.build(config, id_generator, version_generator)
    return model, reader.issues
