"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from database.models.interviewers import Interviewer
from database.models.roles import Role
from database.models.questions import Question
from database.models.interviews import Interview
from database.models.candidates import Candidate
from database.models.interview_links import InterviewLink, ProcessingStatus
from database.models.video_answers import VideoAnswer

__all__ = [
    "Interviewer",
    "Role",
    "Question",
    "Interview",
    "Candidate",
    "InterviewLink",
    "ProcessingStatus",
    "VideoAnswer",
]
