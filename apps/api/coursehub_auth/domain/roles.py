"""Account roles and the capabilities attached to them."""

from enum import StrEnum


class Role(StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class CourseState(StrEnum):
    CREATING = "CREATING"
    READY_TO_ACCEPT = "READY_TO_ACCEPT"
    PUBLISHED = "PUBLISHED"
    HIDDEN = "HIDDEN"


_COURSE_STATE_CAPABILITIES: dict[Role, frozenset[CourseState]] = {
    Role.ADMIN: frozenset(CourseState),
    Role.USER: frozenset({CourseState.READY_TO_ACCEPT, CourseState.HIDDEN}),
}


def allowed_course_states(role: Role) -> list[CourseState]:
    """Return deterministically ordered course states a role may assign."""
    return sorted(_COURSE_STATE_CAPABILITIES.get(role, frozenset()), key=lambda s: s.value)


def can_set_course_state(role: Role, state: CourseState) -> bool:
    return state in _COURSE_STATE_CAPABILITIES.get(role, frozenset())
