"""
Composition root.

    async with await Storefront.open(Settings.from_env()) as shop:
        await shop.start()
        shop.cart.add_item(product, 9)
        await shop.sign_in("u1", "a@b.co")      # guest cart merges once
        match shop.checkout.begin():
            case Ok(attempt): ...

Services are plain objects passed to one another; cart and favorites follow
identity changes through the resolver's channel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import TracebackType

from kungfu import Result, Ok, Error

from kixstore._logging import configure_logging, get_logger
from kixstore._types import Subscription
from kixstore.cart import CartService
from kixstore.catalog import Catalog, ReviewStore
from kixstore.checkout import CheckoutOrchestrator
from kixstore.config import Settings
from kixstore.errors import TransientIOError
from kixstore.favorites import FavoritesService
from kixstore.identity import Identity, IdentityResolver, Transition
from kixstore.orders import OrderRepository
from kixstore.payment import (
    OrderNotifier,
    PaymentConfirmationHandler,
    PaymentGateway,
    PaymentProcessor,
    SandboxGateway,
)
from kixstore.profiles import Profile, ProfileService
from kixstore.promo import PromoBook, PromoValidator
from kixstore.storage import (
    DocumentStore,
    FileLocalStorage,
    LocalStorage,
    MemoryLocalStorage,
    SessionStorage,
    SQLAlchemyDocumentStore,
    WriteQueue,
)

log = get_logger("storefront")


@dataclass(slots=True)
class Storefront:
    settings: Settings
    store: DocumentStore
    local: LocalStorage
    session: LocalStorage
    queue: WriteQueue
    identity: IdentityResolver
    profiles: ProfileService
    catalog: Catalog
    reviews: ReviewStore
    cart: CartService
    favorites: FavoritesService
    promos: PromoValidator
    orders: OrderRepository
    gateway: PaymentGateway
    confirmations: PaymentConfirmationHandler
    payments: PaymentProcessor
    checkout: CheckoutOrchestrator
    _subscriptions: list[Subscription] = field(default_factory=list)
    _owned_store: SQLAlchemyDocumentStore | None = None

    @classmethod
    async def open(
        cls,
        settings: Settings | None = None,
        *,
        store: DocumentStore | None = None,
        local: LocalStorage | None = None,
        gateway: PaymentGateway | None = None,
        notifier: OrderNotifier | None = None,
    ) -> Storefront:
        """
        Build every service from `settings`. A `store` passed in is used as
        is and left open on close().
        """
        settings = settings if settings is not None else Settings()
        configure_logging(settings.log_level)

        owned: SQLAlchemyDocumentStore | None = None
        if store is None:
            owned = await SQLAlchemyDocumentStore.connect(settings.database_url)
            store = owned

        if local is None:
            local = (
                FileLocalStorage(settings.local_storage_dir)
                if settings.local_storage_dir is not None
                else MemoryLocalStorage()
            )
        session = SessionStorage()
        queue = WriteQueue()
        gateway = gateway if gateway is not None else SandboxGateway()

        identity = IdentityResolver()
        profiles = ProfileService(store)
        cart = CartService(store, local, queue)
        favorites = FavoritesService(store, local, queue)
        orders = OrderRepository(store, profiles)
        promos = PromoValidator(PromoBook(store))
        confirmations = PaymentConfirmationHandler(orders, cart, session, notifier)
        payments = PaymentProcessor(gateway, orders, confirmations)
        checkout = CheckoutOrchestrator(
            identity=identity,
            cart=cart,
            promos=promos,
            orders=orders,
            profiles=profiles,
            gateway=gateway,
            processor=payments,
            session=session,
            store=store,
            policy=settings.pricing,
            currency=settings.currency,
        )

        shop = cls(
            settings=settings,
            store=store,
            local=local,
            session=session,
            queue=queue,
            identity=identity,
            profiles=profiles,
            catalog=Catalog(store, profiles),
            reviews=ReviewStore(store),
            cart=cart,
            favorites=favorites,
            promos=promos,
            orders=orders,
            gateway=gateway,
            confirmations=confirmations,
            payments=payments,
            checkout=checkout,
            _owned_store=owned,
        )
        shop._subscriptions.append(identity.subscribe(cart.handle_transition))
        shop._subscriptions.append(identity.subscribe(favorites.handle_transition))
        log.info("storefront_opened", database=settings.database_url, persistent_local=settings.local_storage_dir is not None)
        return shop

    # ─── session ─────────────────────────────────────────────────────────────

    async def start(self, restored: Identity | None = None) -> Transition:
        """Initial identity: restored session or anonymous."""
        return await self.identity.start(restored)

    async def sign_in(self, user_id: str, email: str | None = None) -> Transition:
        return await self.identity.sign_in(user_id, email)

    async def sign_up(
        self,
        user_id: str,
        email: str,
        display_name: str | None = None,
    ) -> Result[Profile, TransientIOError]:
        """Create the profile, then sign in as the new account. No profile, no session."""
        match await self.profiles.create(user_id, email, display_name):
            case Ok(profile):
                await self.sign_in(user_id, email)
                return Ok(profile)
            case Error(err):
                log.warning("sign_up_failed", user_id=user_id, error=err.message)
                return Error(err)

    async def sign_out(self) -> Transition:
        return await self.identity.sign_out()

    # ─── lifecycle ───────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Drain queued saves, detach listeners, release an owned store."""
        await self.queue.flush()
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        if self._owned_store is not None:
            await self._owned_store.close()
            self._owned_store = None
        log.info("storefront_closed", failed_saves=self.queue.failures)

    async def __aenter__(self) -> Storefront:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = ("Storefront",)
