import pytest

from app.core.errors import ValidationFailure
from app.core.security import Role
from app.modules.consent.service import ConsentLedger, Origin, RevokeStatus


@pytest.fixture
async def ledger(application):
    settings = application.state.settings
    async with application.state.db.sessionmaker() as session:
        yield ConsentLedger(session, application.state.audit, categories=settings.CONSENT_CATEGORIES,
                            policy_version=settings.CONSENT_POLICY_VERSION)


@pytest.fixture
async def user(factory):
    return await factory.user(Role.PATIENT)


class TestConsentLedger:
    async def test_grant_revoke_grant(self, ledger, user):
        await ledger.grant(user.id, "marketing_communications")
        await ledger.revoke(user.id, "marketing_communications")
        third = await ledger.grant(user.id, "marketing_communications")

        history = await ledger.history(user.id, "marketing_communications")
        assert [r.granted for r in history] == [True, False, True]
        state = await ledger.current_state(user.id, "marketing_communications")
        assert state.granted
        assert state.since == third.granted_at

    async def test_revoke_without_grant(self, ledger, user):
        result = await ledger.revoke(user.id, "data_sharing_doctors")
        assert result.status is RevokeStatus.NOT_FOUND
        assert not result.revoked
        assert await ledger.history(user.id) == []

    async def test_revoke_twice(self, ledger, user):
        await ledger.grant(user.id, "marketing_communications")
        first = await ledger.revoke(user.id, "marketing_communications")
        second = await ledger.revoke(user.id, "marketing_communications")
        assert first.revoked
        assert second.status is RevokeStatus.ALREADY_REVOKED
        assert len(await ledger.history(user.id)) == 2

    async def test_revocation_keeps_grant_time(self, ledger, user):
        grant = await ledger.grant(user.id, "data_processing")
        result = await ledger.revoke(user.id, "data_processing")
        assert result.record.granted_at == grant.granted_at
        assert result.record.revoked_at is not None
        assert not await ledger.consent_granted(user.id, "data_processing")

    async def test_unknown_category(self, ledger, user):
        with pytest.raises(ValidationFailure):
            await ledger.grant(user.id, "telepathy")

    async def test_origin_is_recorded(self, ledger, user):
        record = await ledger.grant(user.id, "data_processing", Origin("10.0.0.7", "pytest-agent"))
        assert record.client_ip == "10.0.0.7"
        assert record.user_agent == "pytest-agent"
        assert record.policy_version == "1.0"

    async def test_changes_are_audited(self, ledger, user, factory):
        await ledger.grant(user.id, "data_processing")
        await ledger.revoke(user.id, "data_processing")
        actions = [e.action for e in await factory.audit() if e.resource_type == "consent"]
        assert actions == ["CONSENT_GRANTED", "CONSENT_REVOKED"]

    async def test_summary(self, ledger, user):
        await ledger.grant(user.id, "data_processing")
        await ledger.grant(user.id, "marketing_communications")
        await ledger.revoke(user.id, "marketing_communications")
        summary = {s["category"]: s for s in await ledger.summary(user.id)}
        assert summary["data_processing"]["current_status"] == "granted"
        assert summary["marketing_communications"]["current_status"] == "revoked"
        assert len(summary["marketing_communications"]["history"]) == 2
