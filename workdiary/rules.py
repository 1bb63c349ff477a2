"""
Entry rules applied identically by the server and by optimistic client updates.
"""
from typing import List, Optional, Sequence

from workdiary.models import Reaction, ReactionType, Todo


def apply_reaction(reactions: Sequence[Reaction], user_id: str, reaction_type) -> List[Reaction]:
    """
    Return the reaction list after ``user_id`` reacts with ``reaction_type``.

    A user holds at most one reaction per entry: reacting with the type they
    already have removes it, reacting with another type replaces the type in
    place, otherwise a new reaction is appended.
    """
    reaction_type = ReactionType(reaction_type).value
    result = []
    found = False
    for reaction in reactions:
        if reaction.user_id != user_id:
            result.append(reaction)
            continue
        if found:
            # collapse duplicates left over from older data
            continue
        found = True
        if reaction.type != reaction_type:
            result.append(reaction.model_copy(update={"type": reaction_type}))
    if not found:
        result.append(Reaction(user_id=user_id, type=reaction_type))
    return result


def find_todo_index(todos: Sequence[Todo], todo_ref: str) -> Optional[int]:
    """
    Resolve a todo reference to its position.

    ``todo_ref`` is a todo id, or a zero-based index for callers that still
    address todos positionally. Returns None when nothing matches.
    """
    for index, todo in enumerate(todos):
        if todo.id == todo_ref:
            return index
    if todo_ref.isdigit():
        index = int(todo_ref)
        if index < len(todos):
            return index
    return None
