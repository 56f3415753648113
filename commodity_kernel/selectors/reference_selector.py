"""
Reference lookups -- actors, stores and campaigns.

SQL implementations of the ActorLookup, StoreLookup and CampaignLookup
ports.  One small selector per port so each exposes exactly the
``find_by_id`` / ``get_active`` shape the Transfer Service expects.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from commodity_kernel.domain.ports import ACTIVE, ActorRef, CampaignRef, StoreRef
from commodity_kernel.models.reference import Actor, Campaign, Store, store_campaigns
from commodity_kernel.selectors.base import BaseSelector


class ActorSelector(BaseSelector):
    def find_by_id(self, actor_id: UUID) -> ActorRef | None:
        actor = self.session.get(Actor, actor_id)
        if actor is None:
            return None
        return ActorRef(
            id=actor.id,
            status=actor.status,
            family_name=actor.family_name,
            given_name=actor.given_name,
            oncc_id=actor.oncc_id,
        )


class StoreSelector(BaseSelector):
    def find_by_id(self, store_id: UUID) -> StoreRef | None:
        if self.session.get(Store, store_id) is None:
            return None
        campaign_ids = self.session.execute(
            select(store_campaigns.c.campaign_id).where(store_campaigns.c.store_id == store_id)
        ).scalars()
        return StoreRef(id=store_id, campaign_ids=frozenset(campaign_ids))


class CampaignSelector(BaseSelector):
    @staticmethod
    def _to_ref(campaign: Campaign) -> CampaignRef:
        return CampaignRef(id=campaign.id, code=campaign.code, status=campaign.status)

    def get_active(self) -> CampaignRef | None:
        campaign = self.session.execute(
            select(Campaign)
            .where(Campaign.status == ACTIVE)
            .order_by(Campaign.start_date.desc())
            .limit(1)
        ).scalar_one_or_none()
        return self._to_ref(campaign) if campaign else None

    def find_by_id(self, campaign_id: UUID) -> CampaignRef | None:
        campaign = self.session.get(Campaign, campaign_id)
        return self._to_ref(campaign) if campaign else None
