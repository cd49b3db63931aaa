"""
Tests for hook registration on the client and the localize action.
"""
import pytest

from l10n import Client, CreationRejected, L10nContext, L10nError, LocalizeRequest, Mode, localized, register_callbacks
from l10n.infra.client import Processor

from tests.models import Article, Page, Product, Tag

EVERYTHING = L10nContext(mode=Mode.UNSCOPED)


async def noop(client, stmt):
    return None


class TestProcessor:
    def test_register_before_and_after(self):
        p = Processor("query")
        p.register("core:query", noop)
        p.register("first", noop, before="core:query")
        p.register("last", noop, after="core:query")
        p.register("middle", noop, after="first")
        assert p.names() == ["first", "middle", "core:query", "last"]

    def test_duplicate_name_rejected(self):
        p = Processor("create")
        p.register("core:create", noop)
        with pytest.raises(ValueError):
            p.register("core:create", noop)

    def test_unknown_anchor(self):
        p = Processor("create")
        with pytest.raises(KeyError):
            p.register("x", noop, before="missing")

    def test_remove(self):
        p = Processor("create")
        p.register("core:create", noop)
        p.remove("core:create")
        assert p.get("core:create") is None


class TestRegisterCallbacks:
    @pytest.mark.asyncio
    async def test_hooks_wrap_the_defaults(self, session):
        client = localized(session)
        assert client.callbacks.create.names() == ["l10n:before_create", "core:create", "l10n:after_create"]
        assert client.callbacks.update.names() == ["l10n:before_update", "core:update", "l10n:after_update"]
        assert client.callbacks.delete.names() == ["l10n:before_delete", "core:delete"]
        assert client.callbacks.query.names() == ["l10n:before_query", "core:query"]
        assert client.callbacks["row"].names() == ["l10n:before_query", "core:row_query"]

    @pytest.mark.asyncio
    async def test_idempotent(self, session):
        client = localized(session)
        register_callbacks(client)
        register_callbacks(client)
        assert client.callbacks.create.names().count("l10n:before_create") == 1

    @pytest.mark.asyncio
    async def test_unknown_kind(self, session):
        with pytest.raises(KeyError):
            Client(session).callbacks["upsert"]

    @pytest.mark.asyncio
    async def test_bare_client_is_not_scoped(self, client, session, fr):
        await client.create(Page(id=1, title="One"))
        await client.create(Page(id=1, title="Un"), ctx=fr)

        bare = Client(session)
        assert await bare.count(Page, ctx=L10nContext(mode=Mode.GLOBAL)) == 2

    @pytest.mark.asyncio
    async def test_custom_hook_sees_rewritten_statement(self, client, fr):
        seen = []

        async def audit(c, stmt):
            seen.append(len(stmt.where))

        client.callbacks.query.register("audit", audit, after="l10n:before_query")
        await client.query(Page, Page.id == 1, ctx=fr)
        assert seen == [3]


class TestRawClient:
    @pytest.mark.asyncio
    async def test_raw_update_skips_propagation(self, client, fr):
        await client.create(Article(id=1, title="Hello"))
        await client.create(Article(id=1, title="Hello"), ctx=fr)

        updated = await client.raw.update_columns(
            Article, {"title": "Raw"}, Article.id == 1, Article.language_code == "en-US"
        )
        assert updated == 1
        variant = await client.first(Article, Article.id == 1, ctx=fr.with_mode(Mode.LOCALE))
        assert variant.title == "Hello"


class TestLocalize:
    @pytest.mark.asyncio
    async def test_creates_missing_variants(self, client):
        article = await client.create(Article(id=1, title="Hello", body="Body"))

        created = await client.localize(article, LocalizeRequest(targets=("fr-FR", "de-DE", "en-US")))
        assert [a.language_code for a in created] == ["fr-FR", "de-DE"]
        assert all(a.body == "Body" for a in created)

        rows = await client.query(Article, ctx=EVERYTHING)
        assert sorted(r.language_code for r in rows) == ["de-DE", "en-US", "fr-FR"]
        canonical = await client.first(Article, Article.id == 1, ctx=L10nContext(mode=Mode.GLOBAL))
        assert sorted(canonical.available_locales()) == ["de-DE", "en-US", "fr-FR"]

    @pytest.mark.asyncio
    async def test_existing_variants_are_skipped(self, client):
        article = await client.create(Article(id=1, title="Hello"))
        await client.localize(article, LocalizeRequest(targets=("fr-FR",)))
        assert await client.localize(article, LocalizeRequest(targets=("fr-FR",))) == []

    @pytest.mark.asyncio
    async def test_from_another_source(self, client, fr):
        article = await client.create(Article(id=1, title="Hello", body="English"))
        await client.create(Article(id=1, title="Hello", body="Français"), ctx=fr)

        created = await client.localize(article, LocalizeRequest(targets=("fr-CA",), source="fr-FR"))
        assert [(a.language_code, a.body) for a in created] == [("fr-CA", "Français")]

    @pytest.mark.asyncio
    async def test_respects_creation_policy(self, client):
        product = await client.create(Product(id=1, name="Chair"))
        with pytest.raises(CreationRejected):
            await client.localize(product, LocalizeRequest(targets=("fr-FR",)))

    @pytest.mark.asyncio
    async def test_missing_source(self, client):
        with pytest.raises(L10nError):
            await client.localize(Article(id=42, title="Ghost"), LocalizeRequest(targets=("fr-FR",)))

    @pytest.mark.asyncio
    async def test_not_localizable(self, client):
        with pytest.raises(L10nError):
            await client.localize(Tag(id=1, label="news"), LocalizeRequest(targets=("fr-FR",)))
