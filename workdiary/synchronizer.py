"""
Synchronizer: optimistic mutation, remote call, reconciliation.

Each user action is applied to the Local Mirror immediately, then sent to the
Remote Store. Mutations on the same entry are sent one at a time in call order.
The mirror copy of an entry is always rendered from three layers:

    last server-confirmed copy -> still-pending mutations, in order -> unsaved text draft

so a server response can never wipe out a later optimistic change.

Failures are handled the same way for every mutation kind: the failed
mutation is dropped from the pending layer (which reverts exactly its
optimistic effect), a short-lived error message is shown, and the active view
is refetched from the server.
"""
import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional

from workdiary.config import STATUS_MESSAGE_SECONDS
from workdiary.exceptions import RemoteStoreError
from workdiary.mirror import FeedView, LocalMirror
from workdiary.models import DiaryEntry, ReactionType, UserRef
from workdiary.mutations import (
    AddComment,
    AddTodo,
    DeleteTodo,
    Mutation,
    SaveContent,
    SetTodoCompleted,
    ToggleReaction,
)
from workdiary.remote_store import RemoteStore
from workdiary.status import Notice

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_MESSAGE = "You are not logged in. Please log in again."


class _EntryQueue:
    """Per-entry pending state. Exists only while something is outstanding."""

    def __init__(self, confirmed: Optional[DiaryEntry]):
        self.confirmed = confirmed
        self.pending: List[Mutation] = []
        self.draft: Optional[str] = None
        self.aliases: Dict[str, str] = {}
        self.lock = asyncio.Lock()

    def resolve(self, ref: str) -> str:
        return self.aliases.get(ref, ref)

    def render(self) -> Optional[DiaryEntry]:
        entry = self.confirmed
        if entry is None:
            return None
        for mutation in self.pending:
            entry = mutation.apply(entry, self.resolve)
        if self.draft is not None:
            entry = entry.model_copy(update={"content": self.draft})
        return entry

    @property
    def idle(self) -> bool:
        return not self.pending and self.draft is None


class Synchronizer:
    def __init__(
        self,
        remote: RemoteStore,
        mirror: LocalMirror,
        status: Optional[Notice] = None,
        user: Optional[UserRef] = None,
    ):
        self.remote = remote
        self.mirror = mirror
        self.status = status or Notice()
        self._user = user
        self._queues: Dict[str, _EntryQueue] = {}
        self._create_lock = asyncio.Lock()

    @property
    def user(self) -> Optional[UserRef]:
        return self._user or self.remote.user

    def _require_user(self) -> Optional[UserRef]:
        user = self.user
        if user is None:
            logger.warning("No logged-in user, action skipped")
            self.status.error(LOGIN_REQUIRED_MESSAGE, STATUS_MESSAGE_SECONDS)
        return user

    # ==================== Views ====================

    def set_view(self, user_id: Optional[str] = None, day: Optional[date] = None):
        self.mirror.view = FeedView(user_id=user_id, day=day)

    def show_my_entries(self) -> bool:
        user = self._require_user()
        if user is None:
            return False
        self.set_view(user_id=user.id)
        return True

    def show_team_feed(self, day: Optional[date] = None):
        self.set_view(day=day)

    async def fetch_entries(self, page: int = 1) -> bool:
        """Load one page of the active view into the mirror."""
        if await self._fetch(page):
            return True
        self.status.error("Failed to fetch diary entries", STATUS_MESSAGE_SECONDS)
        return False

    async def _fetch(self, page: int) -> bool:
        view = self.mirror.view
        self.mirror.loading = True
        try:
            result = await self.remote.list_diaries(user_id=view.user_id, day=view.day, page=page)
        except RemoteStoreError as e:
            logger.error(f"Error fetching entries: {e}")
            return False
        finally:
            self.mirror.loading = False

        entries = [self._merge_fetched(entry) for entry in result.diaries]
        self.mirror.replace_all(entries, total_pages=result.total_pages, current_page=result.current_page)
        return True

    def _merge_fetched(self, entry: DiaryEntry) -> DiaryEntry:
        queue = self._queues.get(entry.id)
        if queue is None:
            return entry
        # never step back to a copy older than one already confirmed
        if queue.confirmed is None or entry.updated_at >= queue.confirmed.updated_at:
            queue.confirmed = entry
        return queue.render()

    # ==================== Mutations ====================

    async def add_comment(self, entry_id: str, content: str) -> bool:
        user = self._require_user()
        if user is None:
            return False
        return await self._submit(entry_id, AddComment(user, content))

    async def toggle_reaction(self, entry_id: str, reaction_type: ReactionType) -> bool:
        user = self._require_user()
        if user is None:
            return False
        return await self._submit(entry_id, ToggleReaction(user.id, reaction_type))

    async def add_todo(self, entry_id: str, content: str) -> bool:
        return await self._submit(entry_id, AddTodo(content))

    async def toggle_todo(self, entry_id: str, todo_id: str) -> bool:
        todo = self._visible_todo(entry_id, todo_id)
        if todo is None:
            logger.warning(f"Todo {todo_id} is not on entry {entry_id}, nothing to toggle")
            return False
        return await self._submit(entry_id, SetTodoCompleted(todo.id, not todo.completed))

    async def delete_todo(self, entry_id: str, todo_id: str) -> bool:
        todo = self._visible_todo(entry_id, todo_id)
        if todo is None:
            logger.warning(f"Todo {todo_id} is not on entry {entry_id}, nothing to delete")
            return False
        return await self._submit(entry_id, DeleteTodo(todo.id))

    def _visible_todo(self, entry_id: str, todo_id: str):
        entry = self.mirror.get(entry_id)
        if entry is None:
            return None
        queue = self._queues.get(entry_id)
        candidates = {todo_id, queue.resolve(todo_id)} if queue else {todo_id}
        for todo in entry.todos:
            if todo.id in candidates:
                return todo
        return None

    async def _submit(self, entry_id: str, mutation: Mutation) -> bool:
        queue = self._queues.get(entry_id)
        if queue is None:
            queue = self._queues[entry_id] = _EntryQueue(self.mirror.get(entry_id))

        # Phase 1: optimistic apply, visible right away
        queue.pending.append(mutation)
        self._render(queue)

        async with queue.lock:
            # Phase 2: remote call, one per entry at a time
            # a refetch during the call may already show its effect in queue.confirmed
            previous = queue.confirmed
            try:
                result = await mutation.send(self.remote, entry_id, queue.resolve)
            except RemoteStoreError as e:
                # Phase 3b: revert this mutation only, then resync
                queue.pending.remove(mutation)
                self._render(queue)
                logger.error(f"Error {mutation.description} on {entry_id}: {e.to_dict()}")
                self.status.error(mutation.failure_message, STATUS_MESSAGE_SECONDS)
                await self._fetch(self.mirror.current_page)
                succeeded = False
            else:
                # Phase 3a: the server copy becomes the confirmed layer
                queue.aliases.update(mutation.aliases(previous, result))
                queue.confirmed = result
                queue.pending.remove(mutation)
                self._render(queue)
                succeeded = True

        self._release(entry_id, queue)
        return succeeded

    def _render(self, queue: _EntryQueue):
        entry = queue.render()
        if entry is not None:
            self.mirror.replace(entry)

    def _release(self, entry_id: str, queue: _EntryQueue):
        if queue.idle and self._queues.get(entry_id) is queue:
            del self._queues[entry_id]

    # ==================== Diary text ====================

    def own_entry_for_today(self) -> Optional[DiaryEntry]:
        user = self.user
        if user is None:
            return None
        today = date.today()
        for entry in self.mirror.snapshot():
            if entry.user.id == user.id and entry.date == today:
                return entry
        return None

    def set_draft(self, text: str) -> bool:
        """Show unsaved text in today's entry. Returns False if the mirror has no entry for today yet."""
        entry = self.own_entry_for_today()
        if entry is None:
            return False
        queue = self._queues.get(entry.id)
        if queue is None:
            queue = self._queues[entry.id] = _EntryQueue(entry)
        queue.draft = text
        self._render(queue)
        return True

    def clear_draft(self, text: str):
        """Drop the draft once ``text`` is saved, unless newer text has been typed since."""
        entry = self.own_entry_for_today()
        if entry is None:
            return
        queue = self._queues.get(entry.id)
        if queue is None or queue.draft != text:
            return
        queue.draft = None
        self._render(queue)
        self._release(entry.id, queue)

    async def save_content(self, content: str) -> bool:
        """Upsert today's entry text."""
        if self._require_user() is None:
            return False
        async with self._create_lock:
            entry = self.own_entry_for_today()
            if entry is None:
                return await self._create_today(content)
        return await self._submit(entry.id, SaveContent(content))

    async def _create_today(self, content: str) -> bool:
        try:
            entry = await self.remote.save_today(content)
        except RemoteStoreError as e:
            logger.error(f"Error creating today's entry: {e}")
            self.status.error(SaveContent.failure_message, STATUS_MESSAGE_SECONDS)
            await self._fetch(self.mirror.current_page)
            return False
        if self.mirror.view.matches(entry):
            self.mirror.upsert(entry)
        return True
