"""
Integration tests for locale-scoped deletes.
"""
import pytest
import pytest_asyncio

from l10n import L10nContext, L10nError, Mode

from tests.models import Page, Product

EVERYTHING = L10nContext(mode=Mode.UNSCOPED)


@pytest_asyncio.fixture
async def pages(client, fr):
    for pid in (1, 2):
        await client.create(Page(id=pid, title=f"Page {pid}"))
        await client.create(Page(id=pid, title=f"Page {pid} (fr)"), ctx=fr)
    return client


def keys(rows):
    return sorted((r.id, r.language_code) for r in rows)


class TestSoftDelete:
    @pytest.mark.asyncio
    async def test_locale_delete_only_hits_locale_row(self, pages, fr):
        assert await pages.delete(Page, Page.id == 1, ctx=fr) == 1

        assert keys(await pages.query(Page, ctx=EVERYTHING)) == [(1, "en-US"), (2, "en-US"), (2, "fr-FR")]
        # the canonical row shows through again
        page = await pages.first(Page, Page.id == 1, ctx=fr)
        assert page.language_code == "en-US"

    @pytest.mark.asyncio
    async def test_global_delete_hits_every_variant(self, pages):
        assert await pages.delete(Page, Page.id == 2) == 2
        assert keys(await pages.query(Page, ctx=EVERYTHING)) == [(1, "en-US"), (1, "fr-FR")]

    @pytest.mark.asyncio
    async def test_instance_delete_uses_its_key(self, pages):
        page = await pages.first(Page, Page.id == 1)
        assert await pages.delete(page) == 1

        rows = await pages.query(Page, Page.id == 1, ctx=EVERYTHING, unscoped=True)
        deleted = {r.language_code: r.deleted_at is not None for r in rows}
        assert deleted == {"en-US": True, "fr-FR": False}

    @pytest.mark.asyncio
    async def test_unscoped_delete_is_permanent(self, pages, fr):
        assert await pages.delete(Page, Page.id == 1, ctx=fr, unscoped=True) == 1
        assert await pages.count(Page, ctx=EVERYTHING, unscoped=True) == 3

    @pytest.mark.asyncio
    async def test_deleting_twice_is_a_noop(self, pages, fr):
        await pages.delete(Page, Page.id == 1, ctx=fr)
        assert await pages.delete(Page, Page.id == 1, ctx=fr) == 0


class TestHardDelete:
    @pytest.mark.asyncio
    async def test_locale_row_of_plain_model(self, client, fr):
        await client.create(Product(id=1, name="Chair"))
        await client.raw.insert(Product, {"id": 1, "language_code": "fr-FR", "name": "Chaise", "price": 0})

        assert await client.delete(Product, Product.id == 1, ctx=fr) == 1
        names = await client.pluck(Product, "name", ctx=EVERYTHING)
        assert names == ["Chair"]

    @pytest.mark.asyncio
    async def test_refuses_unconditional_delete(self, client):
        with pytest.raises(L10nError):
            await client.delete(Product)

    @pytest.mark.asyncio
    async def test_locale_scope_counts_as_condition(self, client, fr):
        await client.raw.insert(Product, {"id": 1, "language_code": "fr-FR", "name": "Chaise", "price": 0})
        assert await client.delete(Product, ctx=fr) == 1
