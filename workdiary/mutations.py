"""
The mutation kinds the Synchronizer knows how to apply and send.

``apply`` is the optimistic, purely local half: it derives a new entry copy and
never fails. ``send`` is the remote half and returns the server's copy.
Both take ``resolve``, which maps a temporary todo id to the id the server
assigned once the todo's creation has been confirmed.
"""
import uuid
from typing import Callable, Dict, Optional

from workdiary.models import Comment, DiaryEntry, ReactionType, Todo, UserRef, utcnow
from workdiary.rules import apply_reaction

TEMP_ID_PREFIX = "temp-"

Resolver = Callable[[str], str]


def temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"

def is_temp_id(value: str) -> bool:
    return value.startswith(TEMP_ID_PREFIX)


class Mutation:
    description = "updating entry"
    failure_message = "Failed to update entry"

    def apply(self, entry: DiaryEntry, resolve: Resolver) -> DiaryEntry:
        raise NotImplementedError

    async def send(self, remote, entry_id: str, resolve: Resolver) -> DiaryEntry:
        raise NotImplementedError

    def aliases(self, previous: Optional[DiaryEntry], result: DiaryEntry) -> Dict[str, str]:
        """Temporary ids this mutation introduced, mapped to the server's ids."""
        return {}

    def __repr__(self):
        return f"<{self.__class__.__name__}>"


class AddComment(Mutation):
    description = "adding comment"
    failure_message = "Failed to add comment"

    def __init__(self, author: UserRef, content: str):
        self.author = author
        self.content = content
        self.temp_id = temp_id()
        self.created_at = utcnow()

    def apply(self, entry, resolve):
        comment = Comment(id=self.temp_id, user=self.author, content=self.content, created_at=self.created_at)
        return entry.model_copy(update={"comments": [*entry.comments, comment]})

    async def send(self, remote, entry_id, resolve):
        return await remote.add_comment(entry_id, self.content)


class ToggleReaction(Mutation):
    description = "adding reaction"
    failure_message = "Failed to add reaction"

    def __init__(self, user_id: str, reaction_type: ReactionType):
        self.user_id = user_id
        self.reaction_type = ReactionType(reaction_type)

    def apply(self, entry, resolve):
        return entry.model_copy(
            update={"reactions": apply_reaction(entry.reactions, self.user_id, self.reaction_type)}
        )

    async def send(self, remote, entry_id, resolve):
        return await remote.set_reaction(entry_id, self.reaction_type)


class AddTodo(Mutation):
    description = "adding todo"
    failure_message = "Failed to add todo"

    def __init__(self, content: str):
        self.content = content
        self.temp_id = temp_id()
        self.created_at = utcnow()

    def apply(self, entry, resolve):
        todo = Todo(
            id=self.temp_id, content=self.content, completed=False,
            created_at=self.created_at, updated_at=self.created_at,
        )
        return entry.model_copy(update={"todos": [*entry.todos, todo]})

    async def send(self, remote, entry_id, resolve):
        return await remote.add_todo(entry_id, self.content)

    def aliases(self, previous, result):
        known = {todo.id for todo in previous.todos} if previous is not None else set()
        # teammates may have added todos in the meantime
        added = [todo.id for todo in result.todos if todo.id not in known and todo.content == self.content]
        if not added:
            return {}
        return {self.temp_id: added[-1]}


class SetTodoCompleted(Mutation):
    description = "toggling todo"
    failure_message = "Failed to toggle todo"

    def __init__(self, todo_id: str, completed: bool):
        self.todo_id = todo_id
        self.completed = completed

    def apply(self, entry, resolve):
        todo_ids = {self.todo_id, resolve(self.todo_id)}
        now = utcnow()
        todos = [
            todo.model_copy(update={"completed": self.completed, "updated_at": now}) if todo.id in todo_ids else todo
            for todo in entry.todos
        ]
        return entry.model_copy(update={"todos": todos})

    async def send(self, remote, entry_id, resolve):
        return await remote.set_todo_completed(entry_id, resolve(self.todo_id), self.completed)


class DeleteTodo(Mutation):
    description = "deleting todo"
    failure_message = "Failed to delete todo"

    def __init__(self, todo_id: str):
        self.todo_id = todo_id

    def apply(self, entry, resolve):
        todo_ids = {self.todo_id, resolve(self.todo_id)}
        return entry.model_copy(update={"todos": [todo for todo in entry.todos if todo.id not in todo_ids]})

    async def send(self, remote, entry_id, resolve):
        return await remote.delete_todo(entry_id, resolve(self.todo_id))


class SaveContent(Mutation):
    description = "saving diary entry"
    failure_message = "Failed to save diary entry"

    def __init__(self, content: str):
        self.content = content

    def apply(self, entry, resolve):
        return entry.model_copy(update={"content": self.content})

    async def send(self, remote, entry_id, resolve):
        return await remote.save_today(self.content)
