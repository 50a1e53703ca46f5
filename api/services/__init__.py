"""
API Services Layer.

Database and storage operations behind the HTTP routes. Every function
takes the session as its first argument and raises ``core.errors``
exceptions; routes only shape responses.
"""

from api.services.interviewers import (
    ensure_interviewer,
    get_interviewer,
    get_interviewer_by_email,
)

from api.services.roles import (
    create_role,
    get_role,
    list_roles,
    list_roles_by_interviewer,
    require_role_owner,
    reserve_id,
)

from api.services.interviews import (
    get_or_create_interview,
    get_interview_by_role,
)

from api.services.candidates import (
    create_candidate,
    get_candidate_by_email_and_role,
    set_submitted,
)

from api.services.questions import (
    create_question,
    list_questions,
    update_question,
    delete_question,
    reorder_questions,
    list_questions_for_token,
    require_question_owner,
)

from api.services.links import (
    LinkDetails,
    create_link,
    get_by_token,
    require_readable,
    require_writable,
    mark_used,
    list_links_for_interview,
)

from api.services.video_answers import (
    submit_answer,
    list_answers,
    list_for_interviewer,
    get_interview_detail,
    require_link_owner,
    open_video_stream,
)

from api.services.stitcher import StitchResult, stitch

from api.services.invitations import invite

__all__ = [
    # Interviewers
    "ensure_interviewer",
    "get_interviewer",
    "get_interviewer_by_email",
    # Roles
    "create_role",
    "get_role",
    "list_roles",
    "list_roles_by_interviewer",
    "require_role_owner",
    "reserve_id",
    # Interviews
    "get_or_create_interview",
    "get_interview_by_role",
    # Candidates
    "create_candidate",
    "get_candidate_by_email_and_role",
    "set_submitted",
    # Questions
    "create_question",
    "list_questions",
    "update_question",
    "delete_question",
    "reorder_questions",
    "list_questions_for_token",
    "require_question_owner",
    # Links
    "LinkDetails",
    "create_link",
    "get_by_token",
    "require_readable",
    "require_writable",
    "mark_used",
    "list_links_for_interview",
    # Video answers
    "submit_answer",
    "list_answers",
    "list_for_interviewer",
    "get_interview_detail",
    "require_link_owner",
    "open_video_stream",
    # Assembly
    "StitchResult",
    "stitch",
    # Invitations
    "invite",
]
