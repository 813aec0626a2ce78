"""The hydraulic model: assets, derived indices and model-wide settings.

`HydraulicModel` is a plain object passed explicitly between operations.
Assets are only changed through :func:`wdngraph.model.moment.apply_moment`,
which keeps ``assets``, ``topology``, ``customer_points`` and
``customer_points_lookup`` in lock-step and regenerates ``version``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from wdngraph.config import MODEL_CONFIG, ModelConfig
from wdngraph.errors import NotALink, NotFound
from wdngraph.model.assets import Asset, LinkAsset, is_link
from wdngraph.model.assets_map import AssetsMap
from wdngraph.model.builder import AssetBuilder, DefaultQuantities
from wdngraph.model.customer_points import CustomerPoints
from wdngraph.model.customer_points_lookup import CustomerPointsLookup
from wdngraph.model.demands import Demands
from wdngraph.model.external_ids import ExternalIdMap
from wdngraph.model.labels import LabelManager
from wdngraph.model.topology import Topology
from wdngraph.utils.ids import IdGenerator, VersionGenerator, random_version

if TYPE_CHECKING:
    from wdngraph.simulation.results import SimulationOverlay


@dataclass(frozen=True)
class Curve:
    """An x-y curve; ``curve_type`` is PUMP, EFFICIENCY, VOLUME or HEADLOSS."""

    id: str
    points: Tuple[Tuple[float, float], ...]
    curve_type: Optional[str] = None


@dataclass
class HydraulicModel:
    """A water network model.

    Attributes:
        version: Opaque token regenerated on every applied Moment.
        assets: Asset values by id.
        topology: Adjacency index mirroring the links in ``assets``.
        customer_points: Customer points by id.
        customer_points_lookup: Pipe -> customer point allocation index.
        asset_builder: Builds new assets with ids and labels.
        label_manager: Label registry shared with ``asset_builder``.
        demands: Demand policy and split convention.
        title: Free text title lines.
        options: ``[OPTIONS]`` keyword -> value, keywords upper case.
        times: ``[TIMES]`` keyword -> value, keywords upper case.
        patterns: Pattern id -> multipliers.
        curves: Curve id -> curve.
        simulation: Last attached simulation overlay, if any.
    """

    version: str
    assets: AssetsMap = field(default_factory=AssetsMap)
    topology: Topology = field(default_factory=Topology)
    customer_points: CustomerPoints = field(default_factory=dict)
    customer_points_lookup: CustomerPointsLookup = field(
        default_factory=CustomerPointsLookup
    )
    asset_builder: AssetBuilder = field(default_factory=AssetBuilder)
    label_manager: LabelManager = field(default_factory=LabelManager)
    demands: Demands = field(default_factory=Demands)
    title: List[str] = field(default_factory=list)
    options: Dict[str, str] = field(default_factory=dict)
    times: Dict[str, str] = field(default_factory=dict)
    patterns: Dict[str, Tuple[float, ...]] = field(default_factory=dict)
    curves: Dict[str, Curve] = field(default_factory=dict)
    simulation: Optional["SimulationOverlay"] = None
    version_generator: VersionGenerator = field(default=random_version, repr=False)
    _external_ids: Optional[ExternalIdMap] = field(
        default=None, init=False, repr=False
    )

    @property
    def units(self) -> str:
        """Flow units keyword (e.g. ``LPS``, ``GPM``)."""
        return self.options.get("UNITS", "GPM")

    @property
    def headloss_formula(self) -> str:
        """Headloss formula keyword: ``H-W``, ``D-W`` or ``C-M``."""
        return self.options.get("HEADLOSS", "H-W")

    def bump_version(self) -> str:
        self.version = self.version_generator()
        return self.version

    def get_asset(self, asset_id: str) -> Asset:
        """Return an asset or raise ``NotFound``."""
        asset = self.assets.get(asset_id)
        if asset is None:
            raise NotFound(asset_id)
        return asset

    def get_link(self, link_id: str) -> LinkAsset:
        """Return a link or raise ``NotFound``/``NotALink``."""
        asset = self.assets.get(link_id)
        if asset is None:
            raise NotFound(link_id, "Link")
        if not is_link(asset):
            raise NotALink(link_id, asset.type.value)
        return asset

    def external_ids(self) -> ExternalIdMap:
        """Integer id mapping for the current version (cached per version)."""
        if self._external_ids is None or self._external_ids.version != self.version:
            self._external_ids = ExternalIdMap.from_model(self)
        return self._external_ids


def initialize_hydraulic_model(
    config: Optional[ModelConfig] = None,
    defaults: Optional[DefaultQuantities] = None,
    units: str = "LPS",
    headloss_formula: str = "H-W",
    id_generator: Optional[IdGenerator] = None,
    version_generator: Optional[VersionGenerator] = None,
) -> HydraulicModel:
    """Create an empty model wired with consistent collaborators.

    Args:
        config: Engine configuration; defaults to ``MODEL_CONFIG``.
        defaults: Default quantities for new assets.
        units: Flow units option.
        headloss_formula: Headloss formula option.
        id_generator: Asset id generator (sequential by default).
        version_generator: Version token generator (random by default).
    """
    config = config or MODEL_CONFIG
    version_generator = version_generator or random_version
    label_manager = LabelManager()
    return HydraulicModel(
        version=version_generator(),
        customer_points_lookup=CustomerPointsLookup(
            search_radius=config.search_radius, cell_size=config.cell_size
        ),
        asset_builder=AssetBuilder(
            defaults=defaults,
            id_generator=id_generator or IdGenerator(),
            label_manager=label_manager,
        ),
        label_manager=label_manager,
        demands=Demands(policy=config.demand_policy, split=config.demand_split),
        options={"UNITS": units, "HEADLOSS": headloss_formula},
        version_generator=version_generator,
    )
