"""AI interviewer — conversational interview gateway.

Connects a browser client to speech-to-text, chat completion and
text-to-speech providers over one WebSocket per candidate, then grades
the finished conversation.

Data flow::

    Microphone chunks → audio buffer → Whisper API → candidate text
      → ConversationEngine (interviewer persona) → question text
      → TTS → audio → browser avatar playback
    end-interview → EvaluationEngine → scores + comments
"""

from interviewer.conversation import ConversationEngine
from interviewer.evaluation import EvaluationEngine
from interviewer.gateway import InterviewGateway

__all__ = [
    "ConversationEngine",
    "EvaluationEngine",
    "InterviewGateway",
]
