from __future__ import annotations

import asyncio

from arcadegate.core.admin.coordinator import SessionCoordinator
from arcadegate.core.licensing.authority import LicenseAuthority
from arcadegate.core.licensing.models import License, RecordKind
from arcadegate.core.store.memory import MemoryRecordStore
from tests.helpers.fakes import FlakyStore, open_app


def test_login_logout_then_restore_fails(memory_cfg, fs):
    async def scenario():
        app = await open_app(memory_cfg, fs)
        assert await app.login_admin("admin", "admin123") is True
        assert app.is_admin_logged_in() is True
        await app.logout_admin()
        assert await app.ensure_session_restored() is False
        assert app.is_admin_logged_in() is False

    asyncio.run(scenario())


def test_repeated_admin_login_refreshes_single_record(memory_cfg, fs):
    async def scenario():
        app = await open_app(memory_cfg, fs)
        assert await app.login_admin("admin", "admin123") is True
        assert await app.login_admin("admin", "admin123") is True
        admin_keys = [lic.key for lic in await app.store.list_licenses() if lic.key == "ADMIN-ADMIN-PERMANENT"]
        assert admin_keys == ["ADMIN-ADMIN-PERMANENT"]

    asyncio.run(scenario())


def test_relogin_after_logout_reactivates_same_record(memory_cfg, fs):
    async def scenario():
        app = await open_app(memory_cfg, fs)
        await app.login_admin("admin", "admin123")
        first_id = (await app.store.get_license("ADMIN-ADMIN-PERMANENT")).id
        await app.logout_admin()
        assert (await app.store.get_license("ADMIN-ADMIN-PERMANENT")).is_active is False
        await app.login_admin("admin", "admin123")
        lic = await app.store.get_license("ADMIN-ADMIN-PERMANENT")
        assert lic.is_active is True
        assert lic.id == first_id
        assert lic.expiration_days is None
        assert lic.used_by == "admin"

    asyncio.run(scenario())


def test_restore_is_noop_when_admin_session_present(memory_cfg, fs):
    async def scenario():
        app = await open_app(memory_cfg, fs)
        await app.login_admin("admin", "admin123")
        before = app.authority.get_current_license()
        assert await app.ensure_session_restored() is True
        assert app.authority.get_current_license().key == before.key

    asyncio.run(scenario())


def test_cold_start_restores_admin_session(cfg, fs):
    async def first_process():
        app = await open_app(cfg, fs)
        assert await app.login_admin("admin", "admin123") is True
        await app.close()

    async def second_process():
        app = await open_app(cfg, fs)
        try:
            # opening the app is enough; no guard or explicit restore involved
            return app.is_admin_logged_in(), app.directory.current_admin_username(), await app.ensure_session_restored()
        finally:
            await app.close()

    asyncio.run(first_process())
    assert asyncio.run(second_process()) == (True, "admin", True)


def test_cold_start_after_logout_does_not_resurrect(cfg, fs):
    async def first_process():
        app = await open_app(cfg, fs)
        await app.login_admin("admin", "admin123")
        await app.logout_admin()

    async def second_process():
        app = await open_app(cfg, fs)
        try:
            return app.is_admin_logged_in(), await app.ensure_session_restored()
        finally:
            await app.close()

    asyncio.run(first_process())
    assert asyncio.run(second_process()) == (False, False)


def test_restore_skips_non_admin_inactive_and_malformed_records():
    async def scenario():
        store = MemoryRecordStore()
        await store.create(License(key="OPEN1-OPEN1-OPEN1-OPEN1"))
        await store.create(License(key="ADMIN-OLD-PERMANENT", is_admin=True, is_active=False))
        bad = await store.create(License(key="ADMIN-BAD-PERMANENT", is_admin=True))
        # write the row directly so no timestamp on it parses
        store._rows[RecordKind.GENERATED_LICENSES][bad.key] = bad.model_copy(update={"created_at": "not-a-date", "updated_at": "garbage", "used_at": None})
        auth = LicenseAuthority(store=store)
        coord = SessionCoordinator(store=store, sink=auth)
        assert await coord.ensure_session_restored() is False
        assert auth.get_current_license() is None

        await store.create(License(key="ADMIN-GOOD-PERMANENT", is_admin=True))
        assert await coord.ensure_session_restored() is True
        assert coord.current_admin_username() == "good"

    asyncio.run(scenario())


def test_restore_store_failure_returns_false(memory_cfg, fs):
    async def scenario():
        store = FlakyStore(MemoryRecordStore())
        app = await open_app(memory_cfg, fs, store=store)
        await app.login_admin("admin", "admin123")
        app.logout()
        store.fail = True
        assert await app.ensure_session_restored() is False
        assert app.is_admin_logged_in() is False

    asyncio.run(scenario())


def test_logout_admin_revokes_only_own_license(memory_cfg, fs):
    async def scenario():
        app = await open_app(memory_cfg, fs)
        await app.login_admin("admin", "admin123")
        await app.directory.create_admin_account("bob", "secret1")
        app.logout()
        await app.login_admin("bob", "secret1")
        app.logout()
        await app.login_admin("admin", "admin123")
        await app.logout_admin()
        assert (await app.store.get_license("ADMIN-ADMIN-PERMANENT")).is_active is False
        assert (await app.store.get_license("ADMIN-BOB-PERMANENT")).is_active is True
        # bob's live license is what a cold start picks up
        assert await app.ensure_session_restored() is True
        assert app.directory.current_admin_username() == "bob"

    asyncio.run(scenario())


def test_restore_for_a_named_admin(memory_cfg, fs):
    async def scenario():
        app = await open_app(memory_cfg, fs)
        await app.login_admin("admin", "admin123")
        await app.directory.create_admin_account("bob", "secret1")
        app.logout()
        await app.login_admin("bob", "secret1")
        app.logout()

        assert await app.ensure_session_restored() is True
        assert app.directory.current_admin_username() == "admin"
        # a different admin's license replaces the held one
        assert await app.ensure_session_restored("BOB") is True
        assert app.directory.current_admin_username() == "bob"
        await app.logout_admin()
        assert await app.ensure_session_restored("bob") is False
        assert (await app.store.get_license("ADMIN-ADMIN-PERMANENT")).is_active is True

    asyncio.run(scenario())


def test_restored_session_keeps_the_account_spelling(cfg, fs):
    async def first_process():
        app = await open_app(cfg, fs)
        await app.login_admin("admin", "admin123")
        await app.directory.create_admin_account("Zoé", "secret1", "super_admin")
        await app.logout_admin()
        assert await app.login_admin("zoé", "secret1")
        await app.close()

    async def second_process():
        app = await open_app(cfg, fs)
        try:
            return app.directory.current_admin_username(), await app.directory.create_admin_account("carol", "secret1")
        finally:
            await app.close()

    asyncio.run(first_process())
    assert asyncio.run(second_process()) == ("Zoé", True)
