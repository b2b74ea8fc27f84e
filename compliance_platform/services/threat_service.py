"""
STRIDE threat modeling service: assets, threat models, scored threats and
their mitigations.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from compliance_platform.core.exceptions import ConflictError, NotFoundError, ValidationError
from compliance_platform.models.threat import (
    Asset,
    COMPLETED_MITIGATION_STATUSES,
    Criticality,
    MitigationImplementationStatus,
    MitigationStrategy,
    RatingLevel,
    StrideCategory,
    Threat,
    ThreatModel,
    ThreatModelStatus,
    ThreatMitigation,
)
from compliance_platform.services.assessment_service import OrganizationService
from compliance_platform.services.risk_scoring import score_pair

logger = logging.getLogger(__name__)

# Qualitative ratings on the 1-5 scale used by the risk register
RATING_VALUES = {
    RatingLevel.VERY_LOW: 1,
    RatingLevel.LOW: 2,
    RatingLevel.MEDIUM: 3,
    RatingLevel.HIGH: 4,
    RatingLevel.VERY_HIGH: 5,
}

STRIDE_CATEGORIES = [
    {
        "code": StrideCategory.SPOOFING.value,
        "name": "Spoofing",
        "description": "Impersonating something or someone else to gain unauthorized access.",
        "security_property": "Authentication",
    },
    {
        "code": StrideCategory.TAMPERING.value,
        "name": "Tampering",
        "description": "Modifying data or code without authorization.",
        "security_property": "Integrity",
    },
    {
        "code": StrideCategory.REPUDIATION.value,
        "name": "Repudiation",
        "description": "Claiming to not have performed an action without others being able to prove otherwise.",
        "security_property": "Non-repudiation",
    },
    {
        "code": StrideCategory.INFORMATION_DISCLOSURE.value,
        "name": "Information Disclosure",
        "description": "Exposing information to someone not authorized to see it.",
        "security_property": "Confidentiality",
    },
    {
        "code": StrideCategory.DENIAL_OF_SERVICE.value,
        "name": "Denial of Service",
        "description": "Denying or degrading service to valid users.",
        "security_property": "Availability",
    },
    {
        "code": StrideCategory.ELEVATION_OF_PRIVILEGE.value,
        "name": "Elevation of Privilege",
        "description": "Gaining capabilities without proper authorization.",
        "security_property": "Authorization",
    },
]

THREAT_UPDATABLE_FIELDS = frozenset({
    "asset_id",
    "stride_category",
    "threat_title",
    "threat_description",
    "impact_description",
    "likelihood",
    "impact",
    "status",
})

MITIGATION_UPDATABLE_FIELDS = frozenset({
    "mitigation_title",
    "mitigation_description",
    "mitigation_strategy",
    "implementation_status",
    "priority",
    "assigned_to",
    "estimated_effort",
    "cost_estimate",
    "implementation_date",
    "verification_method",
    "effectiveness_rating",
})

# Listing order: most urgent priority first, then work in flight before done
PRIORITY_ORDER = [Criticality.CRITICAL, Criticality.HIGH, Criticality.MEDIUM, Criticality.LOW]
MITIGATION_STATUS_ORDER = [
    MitigationImplementationStatus.IN_PROGRESS,
    MitigationImplementationStatus.APPROVED,
    MitigationImplementationStatus.PROPOSED,
    MitigationImplementationStatus.IMPLEMENTED,
    MitigationImplementationStatus.VERIFIED,
    MitigationImplementationStatus.REJECTED,
]


def score_threat(likelihood: RatingLevel, impact: RatingLevel):
    """(risk_score, risk_level) for a pair of qualitative ratings."""
    return score_pair(RATING_VALUES[RatingLevel(likelihood)], RATING_VALUES[RatingLevel(impact)])


class ThreatModelingService:
    """Service for STRIDE threat modeling."""

    def __init__(self, db: Session):
        self.db = db

    # Assets
    def create_asset(self, data: Dict[str, Any]) -> Asset:
        OrganizationService(self.db).get_by_id(data["organization_id"])
        name = (data.get("asset_name") or "").strip()
        if not name:
            raise ValidationError("Asset name is required")

        asset = Asset(
            organization_id=data["organization_id"],
            asset_name=name,
            asset_type=data["asset_type"],
            description=data.get("description"),
            criticality=data.get("criticality") or Criticality.MEDIUM,
            owner=data.get("owner"),
        )
        self.db.add(asset)
        self.db.commit()
        self.db.refresh(asset)
        logger.info(f"Created asset: id={asset.id}, name={asset.asset_name}")
        return asset

    def get_asset(self, asset_id: int) -> Asset:
        asset = self.db.query(Asset).filter(Asset.id == asset_id).first()
        if not asset:
            raise NotFoundError(f"Asset with id {asset_id} not found")
        return asset

    def get_assets(self, organization_id: Optional[int] = None) -> List[Asset]:
        query = self.db.query(Asset)
        if organization_id is not None:
            query = query.filter(Asset.organization_id == organization_id)
        return query.order_by(Asset.asset_name.asc()).all()

    def delete_asset(self, asset_id: int) -> Asset:
        """
        Delete an asset.

        Raises:
            ConflictError: threats still reference the asset
        """
        asset = self.get_asset(asset_id)
        threat_count = self.db.query(func.count(Threat.id)).filter(Threat.asset_id == asset_id).scalar()
        if threat_count:
            raise ConflictError(
                f"Asset {asset_id} is referenced by {threat_count} threat(s) and cannot be deleted"
            )
        self.db.delete(asset)
        self.db.commit()
        logger.info(f"Deleted asset: id={asset_id}")
        return asset

    # Threat models
    def create_threat_model(self, data: Dict[str, Any]) -> ThreatModel:
        OrganizationService(self.db).get_by_id(data["organization_id"])
        name = (data.get("model_name") or "").strip()
        if not name:
            raise ValidationError("Threat model name is required")

        model = ThreatModel(
            organization_id=data["organization_id"],
            model_name=name,
            model_version=data.get("model_version") or "1.0",
            system_name=data.get("system_name"),
            description=data.get("description"),
            scope=data.get("scope"),
            status=data.get("status") or ThreatModelStatus.DRAFT,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info(f"Created threat model: id={model.id}, name={model.model_name}")
        return model

    def get_threat_model(self, model_id: int) -> ThreatModel:
        model = self.db.query(ThreatModel).filter(ThreatModel.id == model_id).first()
        if not model:
            raise NotFoundError(f"Threat model with id {model_id} not found")
        return model

    def get_threat_models(self, organization_id: Optional[int] = None) -> List[ThreatModel]:
        query = self.db.query(ThreatModel)
        if organization_id is not None:
            query = query.filter(ThreatModel.organization_id == organization_id)
        return query.order_by(ThreatModel.created_at.desc(), ThreatModel.id.desc()).all()

    # Threats
    def _check_asset(self, asset_id: Optional[int]) -> None:
        if asset_id is not None:
            self.get_asset(asset_id)

    def create_threat(self, model_id: int, data: Dict[str, Any]) -> Threat:
        self.get_threat_model(model_id)
        self._check_asset(data.get("asset_id"))

        title = (data.get("threat_title") or "").strip()
        if not title:
            raise ValidationError("Threat title is required")

        likelihood = RatingLevel(data.get("likelihood") or RatingLevel.MEDIUM)
        impact = RatingLevel(data.get("impact") or RatingLevel.MEDIUM)
        risk_score, risk_level = score_threat(likelihood, impact)

        threat = Threat(
            threat_model_id=model_id,
            asset_id=data.get("asset_id"),
            stride_category=StrideCategory(data["stride_category"]),
            threat_title=title,
            threat_description=data.get("threat_description"),
            impact_description=data.get("impact_description"),
            likelihood=likelihood,
            impact=impact,
            risk_score=risk_score,
            risk_level=risk_level,
        )
        if data.get("status") is not None:
            threat.status = data["status"]

        self.db.add(threat)
        self.db.commit()
        self.db.refresh(threat)
        logger.info(f"Created threat: id={threat.id}, model_id={model_id}, score={threat.risk_score}")
        return threat

    def get_threat(self, model_id: int, threat_id: int) -> Threat:
        threat = (
            self.db.query(Threat)
            .filter(Threat.id == threat_id, Threat.threat_model_id == model_id)
            .first()
        )
        if not threat:
            raise NotFoundError(f"Threat with id {threat_id} not found")
        return threat

    def get_threats(self, model_id: int, stride_category: Optional[StrideCategory] = None) -> List[Threat]:
        self.get_threat_model(model_id)
        query = self.db.query(Threat).filter(Threat.threat_model_id == model_id)
        if stride_category is not None:
            query = query.filter(Threat.stride_category == stride_category)
        return query.order_by(Threat.risk_score.desc(), Threat.id.asc()).all()

    def update_threat(self, model_id: int, threat_id: int, updates: Dict[str, Any]) -> Threat:
        threat = self.get_threat(model_id, threat_id)
        changes = {key: value for key, value in updates.items() if key in THREAT_UPDATABLE_FIELDS}

        if "asset_id" in changes:
            self._check_asset(changes["asset_id"])
        if "threat_title" in changes:
            title = (changes["threat_title"] or "").strip()
            if not title:
                raise ValidationError("Threat title cannot be empty")
            changes["threat_title"] = title
        for field in ("stride_category", "likelihood", "impact", "status"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be cleared")

        for key, value in changes.items():
            setattr(threat, key, value)

        if {"likelihood", "impact"} & changes.keys():
            threat.risk_score, threat.risk_level = score_threat(threat.likelihood, threat.impact)

        self.db.commit()
        self.db.refresh(threat)
        logger.info(f"Updated threat: id={threat.id}, fields={sorted(changes.keys())}")
        return threat

    # Mitigations
    def _mitigation_query(self, model_id: int, threat_id: int):
        self.get_threat(model_id, threat_id)
        return self.db.query(ThreatMitigation).filter(ThreatMitigation.threat_id == threat_id)

    @staticmethod
    def _stamp_completion(mitigation: ThreatMitigation) -> None:
        if mitigation.implementation_status in COMPLETED_MITIGATION_STATUSES:
            if mitigation.completed_at is None:
                mitigation.completed_at = datetime.now(timezone.utc)
        else:
            mitigation.completed_at = None

    def create_mitigation(self, model_id: int, threat_id: int, data: Dict[str, Any]) -> ThreatMitigation:
        self.get_threat(model_id, threat_id)
        title = (data.get("mitigation_title") or "").strip()
        if not title:
            raise ValidationError("Mitigation title is required")

        mitigation = ThreatMitigation(
            threat_id=threat_id,
            mitigation_title=title,
            mitigation_description=data.get("mitigation_description"),
            mitigation_strategy=MitigationStrategy(data["mitigation_strategy"]),
            implementation_status=MitigationImplementationStatus(
                data.get("implementation_status") or MitigationImplementationStatus.PROPOSED
            ),
            priority=Criticality(data.get("priority") or Criticality.MEDIUM),
            assigned_to=data.get("assigned_to"),
            estimated_effort=data.get("estimated_effort"),
            cost_estimate=data.get("cost_estimate"),
            implementation_date=data.get("implementation_date"),
            verification_method=data.get("verification_method"),
            effectiveness_rating=data.get("effectiveness_rating"),
        )
        self._stamp_completion(mitigation)

        self.db.add(mitigation)
        self.db.commit()
        self.db.refresh(mitigation)
        logger.info(
            f"Created mitigation: id={mitigation.id}, threat_id={threat_id}, "
            f"strategy={mitigation.mitigation_strategy.value}"
        )
        return mitigation

    def get_mitigation(self, model_id: int, threat_id: int, mitigation_id: int) -> ThreatMitigation:
        mitigation = self._mitigation_query(model_id, threat_id).filter(ThreatMitigation.id == mitigation_id).first()
        if not mitigation:
            raise NotFoundError(f"Mitigation with id {mitigation_id} not found")
        return mitigation

    def get_mitigations(self, model_id: int, threat_id: int) -> List[ThreatMitigation]:
        priority_rank = case(
            {priority.value: rank for rank, priority in enumerate(PRIORITY_ORDER)},
            value=ThreatMitigation.priority,
            else_=len(PRIORITY_ORDER),
        )
        status_rank = case(
            {status.value: rank for rank, status in enumerate(MITIGATION_STATUS_ORDER)},
            value=ThreatMitigation.implementation_status,
            else_=len(MITIGATION_STATUS_ORDER),
        )
        return (
            self._mitigation_query(model_id, threat_id)
            .order_by(priority_rank, status_rank, ThreatMitigation.id.asc())
            .all()
        )

    def update_mitigation(
        self,
        model_id: int,
        threat_id: int,
        mitigation_id: int,
        updates: Dict[str, Any],
    ) -> ThreatMitigation:
        mitigation = self.get_mitigation(model_id, threat_id, mitigation_id)
        changes = {key: value for key, value in updates.items() if key in MITIGATION_UPDATABLE_FIELDS}

        if "mitigation_title" in changes:
            title = (changes["mitigation_title"] or "").strip()
            if not title:
                raise ValidationError("Mitigation title cannot be empty")
            changes["mitigation_title"] = title
        for field in ("mitigation_strategy", "implementation_status", "priority"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be cleared")

        for key, value in changes.items():
            setattr(mitigation, key, value)
        if "implementation_status" in changes:
            mitigation.implementation_status = MitigationImplementationStatus(changes["implementation_status"])
            self._stamp_completion(mitigation)

        self.db.commit()
        self.db.refresh(mitigation)
        logger.info(f"Updated mitigation: id={mitigation.id}, fields={sorted(changes.keys())}")
        return mitigation

    def delete_mitigation(self, model_id: int, threat_id: int, mitigation_id: int) -> ThreatMitigation:
        mitigation = self.get_mitigation(model_id, threat_id, mitigation_id)
        self.db.delete(mitigation)
        self.db.commit()
        logger.info(f"Deleted mitigation: id={mitigation_id}, threat_id={threat_id}")
        return mitigation

    def get_mitigation_statistics(self, model_id: int) -> Dict[str, Any]:
        """Mitigation progress across every threat of a threat model."""
        self.get_threat_model(model_id)
        mitigations = (
            self.db.query(ThreatMitigation)
            .join(Threat, ThreatMitigation.threat_id == Threat.id)
            .filter(Threat.threat_model_id == model_id)
            .all()
        )
        threat_count = (
            self.db.query(func.count(Threat.id)).filter(Threat.threat_model_id == model_id).scalar() or 0
        )

        by_status = {status.value: 0 for status in MitigationImplementationStatus}
        by_strategy = {strategy.value: {"count": 0, "completed": 0} for strategy in MitigationStrategy}
        by_priority = {priority.value: 0 for priority in Criticality}
        for mitigation in mitigations:
            completed = mitigation.implementation_status in COMPLETED_MITIGATION_STATUSES
            by_status[mitigation.implementation_status.value] += 1
            by_strategy[mitigation.mitigation_strategy.value]["count"] += 1
            by_strategy[mitigation.mitigation_strategy.value]["completed"] += int(completed)
            by_priority[mitigation.priority.value] += 1

        completed_total = sum(by_status[status.value] for status in COMPLETED_MITIGATION_STATUSES)
        return {
            "threat_model_id": model_id,
            "total_mitigations": len(mitigations),
            "completed_mitigations": completed_total,
            "total_threats": threat_count,
            "threats_with_mitigations": len({mitigation.threat_id for mitigation in mitigations}),
            "by_status": by_status,
            "by_strategy": by_strategy,
            "by_priority": by_priority,
        }
