"""Serialise a hydraulic model to EPANET INP text.

Sections are written in a fixed order, every section header is always
present, assets are ordered by :func:`~wdngraph.utils.ids.id_sort_key`
within their kind, and numbers use the shortest positional decimal that
reads back to the same float. The output is therefore identical for equal
models and :func:`wdngraph.inp.parser.parse_inp` restores every quantity
and every connection exactly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

import numpy as np

from wdngraph.inp.issues import IssueKind, ParserIssues
from wdngraph.inp.parser import NO_CURVE
from wdngraph.logging import get_logger
from wdngraph.model.assets import (
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
from wdngraph.model.demands import compute_demands
from wdngraph.types import DemandPolicy
from wdngraph.utils.ids import id_sort_key

if TYPE_CHECKING:
    from wdngraph.model.hydraulic_model import HydraulicModel

logger = get_logger(__name__)

SEPARATOR = "\t"

SECTION_ORDER = (
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
)

SECTION_COLUMNS = {
    "JUNCTIONS": ";Id\tElevation\tDemand\tPattern",
    "RESERVOIRS": ";Id\tHead\tPattern",
    "TANKS": ";Id\tElevation\tInitLevel\tMinLevel\tMaxLevel\tDiameter"
    "\tMinVol\tVolCurve\tOverflow",
    "PIPES": ";Id\tNode1\tNode2\tLength\tDiameter\tRoughness\tMinorLoss\tStatus",
    "PUMPS": ";Id\tNode1\tNode2\tParameters",
    "VALVES": ";Id\tNode1\tNode2\tDiameter\tType\tSetting\tMinorLoss",
    "DEMANDS": ";Junction\tDemand\tPattern\tCategory",
    "STATUS": ";Id\tStatus/Setting",
    "PATTERNS": ";Id\tMultipliers",
    "CURVES": ";Id\tX-Value\tY-Value",
    "COORDINATES": ";Node\tX-Coord\tY-Coord",
    "VERTICES": ";Link\tX-Coord\tY-Coord",
}

PATTERN_VALUES_PER_LINE = 6

_PIPE_STATUS = {
    PipeStatus.OPEN: "Open",
    PipeStatus.CLOSED: "Closed",
    PipeStatus.CV: "CV",
}


def format_number(value: float) -> str:
    """Shortest exact positional decimal, always with a decimal point.

    ``1`` -> ``"1.0"``, ``0.1`` -> ``"0.1"``, ``1e-7`` -> ``"0.0000001"``.
    """
    return np.format_float_positional(float(value), unique=True, trim="0")


def build_inp(
    model: "HydraulicModel",
    customer_demands: bool = False,
    use_labels: bool = False,
) -> str:
    """Render ``model`` as INP text.

    Values listed by :func:`find_export_issues` are logged as warnings.

    Args:
        model: The model to export.
        customer_demands: Write junction demands computed from allocated
            customer points (in ``[DEMANDS]``) instead of base demands.
        use_labels: Write asset labels instead of asset ids. Labels must be
            unique within nodes and within links for the output to be valid.

    Returns:
        The INP document, ending with ``[END]`` and a newline.
    """
    names: Dict[str, str] = {}
    for asset in model.assets.values():
        names[asset.id] = asset.label if use_labels and asset.label else asset.id

    def name(asset_id: str) -> str:
        return names.get(asset_id, asset_id)

    def ordered(asset_type: AssetType) -> List:
        return sorted(
            model.assets.by_type(asset_type), key=lambda a: id_sort_key(a.id)
        )

    for issue in find_export_issues(model):
        logger.warning("%s", issue)

    customer_totals: Optional[Dict[str, float]] = None
    if customer_demands:
        allocation = compute_demands(model, policy=DemandPolicy.CUSTOMER_DEMANDS)
        customer_totals = allocation.junctions
        if allocation.unassigned:
            logger.warning(
                "%d customer points could not be assigned to a junction; "
                "%s of demand is not exported",
                len(allocation.unassigned),
                format_number(sum(allocation.unassigned.values())),
            )

    junctions = ordered(AssetType.JUNCTION)
    links = (
        ordered(AssetType.PIPE) + ordered(AssetType.PUMP) + ordered(AssetType.VALVE)
    )
    nodes = junctions + ordered(AssetType.RESERVOIR) + ordered(AssetType.TANK)

    body: Dict[str, List[str]] = {section: [] for section in SECTION_ORDER}
    body["TITLE"] = list(model.title)
    for junction in junctions:
        body["JUNCTIONS"].append(
            _junction_line(junction, name, customer_totals is None)
        )
        if customer_totals is not None and customer_totals.get(junction.id):
            body["DEMANDS"].append(
                _row(
                    name(junction.id),
                    format_number(customer_totals[junction.id]),
                    junction.demand_pattern or "",
                )
            )
    body["RESERVOIRS"] = [
        _reservoir_line(r, name) for r in ordered(AssetType.RESERVOIR)
    ]
    body["TANKS"] = [_tank_line(t, name) for t in ordered(AssetType.TANK)]
    body["PIPES"] = [_pipe_line(p, name) for p in ordered(AssetType.PIPE)]
    body["PUMPS"] = [_pump_line(p, name) for p in ordered(AssetType.PUMP)]
    body["VALVES"] = [_valve_line(v, name) for v in ordered(AssetType.VALVE)]
    body["STATUS"] = _status_lines(links, name)
    body["PATTERNS"] = _pattern_lines(model.patterns)
    body["CURVES"] = _curve_lines(model)
    body["OPTIONS"] = _table_lines(
        model.options, {"UNITS": model.units, "HEADLOSS": model.headloss_formula}
    )
    body["TIMES"] = _table_lines(model.times, {})
    for node in nodes:
        if node.coordinates is not None:
            x, y = node.coordinates
            body["COORDINATES"].append(
                _row(name(node.id), format_number(x), format_number(y))
            )
    for link in links:
        if link.coordinates is None:
            continue
        for x, y in link.coordinates[1:-1]:
            body["VERTICES"].append(
                _row(name(link.id), format_number(x), format_number(y))
            )

    out: List[str] = []
    for section in SECTION_ORDER:
        out.append(f"[{section}]")
        if section in SECTION_COLUMNS:
            out.append(SECTION_COLUMNS[section])
        out.extend(body[section])
        out.append("")
    out.append("[END]")
    logger.debug(
        "Built INP: %d nodes, %d links (labels=%s, customer_demands=%s)",
        len(nodes),
        len(links),
        use_labels,
        customer_demands,
    )
    return "\n".join(out) + "\n"


def find_export_issues(model: "HydraulicModel") -> ParserIssues:
    """List model values that INP text cannot carry or EPANET cannot run.

    A pump or GPV valve without a curve is written with ``*`` in place of
    the curve id, which reads back unchanged but is rejected by the solver.
    Values that only apply to the other definition of an asset (the power of
    a curve pump, the curve of a power pump, the numeric setting of a GPV
    valve, the curve of any other valve) have no INP column and are dropped.

    Args:
        model: The model about to be exported.

    Returns:
        One ``not exportable`` issue per affected value, keyed by asset id.
    """
    issues = ParserIssues()

    def report(asset_id: str, message: str) -> None:
        issues.add(IssueKind.NOT_EXPORTABLE, message, affected_id=asset_id)

    for pump in model.assets.by_type(AssetType.PUMP):
        if pump.definition == PumpDefinition.CURVE:
            if not pump.curve_id:
                report(pump.id, f"Pump {pump.id} has no head curve")
            if pump.power:
                report(pump.id, f"Power of curve pump {pump.id} is not written")
        elif pump.curve_id:
            report(pump.id, f"Head curve of power pump {pump.id} is not written")
    for valve in model.assets.by_type(AssetType.VALVE):
        if valve.valve_kind == ValveKind.GPV:
            if not valve.curve_id:
                report(valve.id, f"GPV valve {valve.id} has no headloss curve")
            if valve.setting:
                report(valve.id, f"Setting of GPV valve {valve.id} is not written")
        elif valve.curve_id:
            kind = valve.valve_kind.name
            report(valve.id, f"Curve of {kind} valve {valve.id} is not written")
    return issues


def _row(*tokens: str) -> str:
    return SEPARATOR.join(tokens).rstrip(SEPARATOR)


def _junction_line(
    junction: Junction, name: Callable[[str], str], with_demand: bool
) -> str:
    demand = junction.base_demand if with_demand else 0.0
    pattern = junction.demand_pattern if with_demand else None
    return _row(
        name(junction.id),
        format_number(junction.elevation),
        format_number(demand),
        pattern or "",
    )


def _reservoir_line(reservoir: Reservoir, name: Callable[[str], str]) -> str:
    return _row(
        name(reservoir.id),
        format_number(reservoir.elevation),
        reservoir.head_pattern or "",
    )


def _tank_line(tank: Tank, name: Callable[[str], str]) -> str:
    return _row(
        name(tank.id),
        format_number(tank.elevation),
        format_number(tank.initial_level),
        format_number(tank.min_level),
        format_number(tank.max_level),
        format_number(tank.diameter),
        format_number(tank.min_volume),
        tank.volume_curve or "*",
        "YES" if tank.overflow else "NO",
    )


def _pipe_line(pipe: Pipe, name: Callable[[str], str]) -> str:
    start, end = pipe.connections
    return _row(
        name(pipe.id),
        name(start),
        name(end),
        format_number(pipe.length),
        format_number(pipe.diameter),
        format_number(pipe.roughness),
        format_number(pipe.minor_loss),
        _PIPE_STATUS[pipe.status],
    )


def _pump_line(pump: Pump, name: Callable[[str], str]) -> str:
    start, end = pump.connections
    tokens = [name(pump.id), name(start), name(end)]
    if pump.definition == PumpDefinition.CURVE:
        tokens += ["HEAD", pump.curve_id or NO_CURVE]
    else:
        tokens += ["POWER", format_number(pump.power)]
    tokens += ["SPEED", format_number(pump.speed)]
    if pump.speed_pattern:
        tokens += ["PATTERN", pump.speed_pattern]
    return _row(*tokens)


def _valve_line(valve: Valve, name: Callable[[str], str]) -> str:
    start, end = valve.connections
    if valve.valve_kind == ValveKind.GPV:
        setting = valve.curve_id or NO_CURVE
    else:
        setting = format_number(valve.setting)
    return _row(
        name(valve.id),
        name(start),
        name(end),
        format_number(valve.diameter),
        valve.valve_kind.name,
        setting,
        format_number(valve.minor_loss),
    )


def _status_lines(links: Sequence, name: Callable[[str], str]) -> List[str]:
    lines = []
    for link in links:
        if link.type == AssetType.PUMP and link.status == PumpStatus.OFF:
            lines.append(_row(name(link.id), "Closed"))
        elif link.type == AssetType.VALVE and link.status != ValveStatus.ACTIVE:
            lines.append(_row(name(link.id), link.status.value.capitalize()))
    return lines


def _pattern_lines(patterns: Dict[str, Sequence[float]]) -> List[str]:
    lines = []
    for pattern_id, multipliers in patterns.items():
        values = [format_number(m) for m in multipliers]
        if not values:
            lines.append(pattern_id)
        for start in range(0, len(values), PATTERN_VALUES_PER_LINE):
            chunk = values[start : start + PATTERN_VALUES_PER_LINE]
            lines.append(_row(pattern_id, *chunk))
    return lines


def _curve_lines(model: "HydraulicModel") -> List[str]:
    lines = []
    for curve in model.curves.values():
        if curve.curve_type:
            lines.append(f";{curve.curve_type}:")
        for x, y in curve.points:
            lines.append(_row(curve.id, format_number(x), format_number(y)))
    return lines


def _table_lines(table: Dict[str, str], leading: Dict[str, str]) -> List[str]:
    merged = dict(leading)
    for key, value in table.items():
        merged[key] = value
    return [_row(key, value) for key, value in merged.items()]
