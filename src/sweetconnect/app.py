"""Application wiring: builds every collaborator from an :class:`AppConfig`."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sweetconnect.comms.hub import PresenceHub
from sweetconnect.comms.store import InMemoryMessageStore, MessageStore, SQLiteMessageStore
from sweetconnect.config.schema import AppConfig
from sweetconnect.engine.accounts import AccountNotifications
from sweetconnect.engine.activities import ActivityRecorder
from sweetconnect.engine.errors import AccountExists, RoleConflict
from sweetconnect.engine.router import MessageRouter
from sweetconnect.engine.tasks import BackgroundTasks
from sweetconnect.identity.directory import ActorDirectory
from sweetconnect.identity.resolver import IdentityResolver
from sweetconnect.notify.notifier import Notifier
from sweetconnect.notify.transport import MailTransport, build_transport

logger = logging.getLogger(__name__)


@dataclass
class App:
    """All long-lived collaborators of a running service."""

    config: AppConfig
    directory: ActorDirectory
    resolver: IdentityResolver
    store: MessageStore
    tasks: BackgroundTasks
    transport: MailTransport
    notifier: Notifier
    hub: PresenceHub
    router: MessageRouter
    activities: ActivityRecorder
    accounts: AccountNotifications

    async def start(self) -> None:
        """Open the store and reconcile it with the in-memory directory.

        Actors saved by earlier runs are restored; seed actors missing from
        the store are written to it.
        """
        await self.store.open()
        stored = await self.store.actors()
        for actor in stored:
            if actor.actor_id in self.directory:
                continue
            try:
                self.directory.add(actor)
            except (RoleConflict, AccountExists, ValueError) as exc:
                logger.error("Not restoring actor %s: %s", actor.actor_id, exc)
        stored_ids = {actor.actor_id for actor in stored}
        for actor in self.directory.all():
            if actor.actor_id not in stored_ids:
                await self.store.save_actor(actor)
        logger.info("Directory holds %d actors", len(self.directory))

    async def shutdown(self, timeout: float | None = 10.0) -> None:
        """Let outstanding notifications and pushes finish, then close resources."""
        await self.tasks.drain(timeout=timeout)
        await self.tasks.cancel_all()
        await self.transport.close()
        await self.store.close()


def build_store(config: AppConfig) -> MessageStore:
    if config.store.backend == "memory":
        return InMemoryMessageStore()
    return SQLiteMessageStore(config.store.path)


def seed_directory(directory: ActorDirectory, config: AppConfig) -> None:
    """Register the configured seed actors, skipping conflicting ones."""
    for seed in config.identity.seed_actors:
        try:
            directory.register(
                email=seed.email, name=seed.name, role=seed.role, actor_id=seed.actor_id
            )
        except (RoleConflict, AccountExists, ValueError) as exc:
            logger.error("Skipping seed actor %s: %s", seed.email, exc)


def build_app(
    config: AppConfig | None = None,
    *,
    store: MessageStore | None = None,
    transport: MailTransport | None = None,
) -> App:
    """Construct the service graph.  *store* and *transport* may be injected."""
    config = config or AppConfig()
    directory = ActorDirectory(collective_name=config.identity.collective_name)
    seed_directory(directory, config)
    resolver = IdentityResolver(directory)
    store = store or build_store(config)
    tasks = BackgroundTasks()
    transport = transport or build_transport(config.mail)
    notifier = Notifier(transport, tasks, brand=config.mail.brand)
    hub = PresenceHub(role_of=directory.role_of, mode=config.delivery.mode)
    router = MessageRouter(directory, resolver, store, notifier, hub, tasks)
    return App(
        config=config,
        directory=directory,
        resolver=resolver,
        store=store,
        tasks=tasks,
        transport=transport,
        notifier=notifier,
        hub=hub,
        router=router,
        activities=ActivityRecorder(directory, resolver, store, notifier),
        accounts=AccountNotifications(directory, resolver, store, notifier),
    )
