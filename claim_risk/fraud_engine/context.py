"""Per-claim scoring input: the claim joined with its policy and claimant."""

from typing import NamedTuple

from claim_risk.models.entities import Claim, Claimant, Policy


class ClaimContext(NamedTuple):
    claim: Claim
    policy: Policy
    claimant: Claimant

    @property
    def days_to_report(self) -> int:
        return (self.claim.report_date - self.claim.loss_date).days

    @property
    def days_since_inception(self) -> int:
        return (self.claim.loss_date - self.policy.inception_date).days

    @property
    def policy_inactive(self) -> bool:
        loss = self.claim.loss_date
        return loss < self.policy.inception_date or loss > self.policy.expiry_date
