"""Use case for attaching a single water-limited yield (Yw) source to every field."""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from ..entities.field_site import FieldSite
from ..entities.stage_report import StageReport
from ..entities.yield_ceiling import (
    ResolvedYieldCeiling,
    YieldCeilingCandidate,
    YieldCeilingProvenance,
    clean_yield_series,
)
from ..exceptions import ResolutionError

logger = logging.getLogger(__name__)

STAGE = "yield_ceiling"


def _distance_key(candidate: YieldCeilingCandidate) -> float:
    d = candidate.distance_km
    return d if d is not None and math.isfinite(d) else math.inf


class ResolveYieldCeilingUseCase:
    """
    Resolve Yw per field with a strict tier order:

    1. candidate in the field's own climate zone (nearest first)    -> same_cz
    2. nearest candidate of any zone within max_distance_km          -> cz_station
    3. national-average series of the field's country                -> country_average

    The first satisfied tier wins. Fields without coordinates are excluded.
    """

    def __init__(self, max_distance_km: float = 30.0):
        self.max_distance_km = max_distance_km

    def resolve_field(
        self,
        site: FieldSite,
        candidates: List[YieldCeilingCandidate],
        country_averages: Mapping[str, Mapping[int, Optional[float]]],
    ) -> Optional[ResolvedYieldCeiling]:
        """Apply the tier order to one field; None when no tier applies."""
        usable = sorted((c for c in candidates if c.usable_yields), key=_distance_key)

        same_zone = [c for c in usable if site.climate_zone is not None and c.climate_zone == site.climate_zone]
        if same_zone:
            match = same_zone[0]
            return ResolvedYieldCeiling(
                field_id=site.field_id,
                provenance=YieldCeilingProvenance.SAME_CZ,
                source_id=match.source_id,
                yields=match.usable_yields,
                distance_km=match.distance_km,
            )

        if usable and _distance_key(usable[0]) <= self.max_distance_km:
            match = usable[0]
            return ResolvedYieldCeiling(
                field_id=site.field_id,
                provenance=YieldCeilingProvenance.CZ_STATION,
                source_id=match.source_id,
                yields=match.usable_yields,
                distance_km=match.distance_km,
            )

        national = clean_yield_series(country_averages.get(site.country, {}))
        if national:
            return ResolvedYieldCeiling(
                field_id=site.field_id,
                provenance=YieldCeilingProvenance.COUNTRY_AVERAGE,
                source_id=str(site.country),
                yields=national,
            )
        return None

    def execute(
        self,
        sites: Iterable[FieldSite],
        candidates: Mapping[str, List[YieldCeilingCandidate]],
        country_averages: Mapping[str, Mapping[int, Optional[float]]],
    ) -> Tuple[Dict[str, ResolvedYieldCeiling], StageReport]:
        """
        Execute resolution.

        Args:
            sites: One FieldSite per field (duplicates are collapsed by field_id)
            candidates: Candidates per field_id from the spatial join
            country_averages: Country -> year -> Yw

        Returns:
            Tuple of (field_id -> resolved Yw source, stage report)
        """
        unique_sites = {site.field_id: site for site in sites}
        report = StageReport(stage=STAGE, n_rows=len(unique_sites))
        logger.info(
            f"Resolving Yw for {len(unique_sites)} fields (max station distance {self.max_distance_km} km)"
        )

        resolved: Dict[str, ResolvedYieldCeiling] = {}
        for field_id, site in unique_sites.items():
            if not site.has_coordinates:
                report.add(field_id, ResolutionError("field has no usable coordinates; excluded"))
                continue
            result = self.resolve_field(site, candidates.get(field_id, []), country_averages)
            if result is None:
                report.add(
                    field_id,
                    ResolutionError(f"no climate-zone, station or country-average Yw for country {site.country}"),
                )
                continue
            resolved[field_id] = result

        tiers = {tier.value: 0 for tier in YieldCeilingProvenance}
        for r in resolved.values():
            tiers[r.provenance.value] += 1
        logger.info(f"Resolved {len(resolved)} fields: {tiers}")
        if report.issues:
            logger.warning(f"Dropped {report.n_affected} fields without a Yw source")
        return resolved, report
