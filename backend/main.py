"""
FastAPI Backend for the Sveti AI Tutor

Exposes one tutoring session over REST:
- Subject and learning-style catalogue
- Per-subject conversation history (with display-ready text)
- Chat turns, including the local game-personalization flow
- Conversation clearing
"""

from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
import os
import sys
import time
import logging

from lib.logger import setup_logging, get_logger

setup_logging(level=logging.INFO, use_colors=True)

logger = get_logger("backend.main")

# Add the sveti_tutor package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)
package_src = os.path.join(project_root, 'sveti_tutor', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from lib.supabase_client import get_supabase_client

from sveti_tutor.config import TutorSettings
from sveti_tutor.display import should_suggest_clear, to_display
from sveti_tutor.errors import RequestInFlightError
from sveti_tutor.learning_styles import get_all_styles
from sveti_tutor.prompts import get_subjects, normalize_subject
from sveti_tutor.tutor import SvetiTutor

# Singleton tutor so conversation state survives between requests
_tutor_instance: Optional[SvetiTutor] = None


def get_tutor() -> SvetiTutor:
    """Get or create the singleton SvetiTutor."""
    global _tutor_instance
    if _tutor_instance is None:
        logger.section("Initializing tutor")
        settings = TutorSettings.from_env()
        supabase = get_supabase_client() if settings.storage_backend == "supabase" else None
        _tutor_instance = SvetiTutor.from_settings(settings, supabase_client=supabase)
        logger.success("Tutor initialized", data={
            "storage": settings.storage_backend,
            "model": _tutor_instance.client.model,
            "subject": _tutor_instance.subject,
        })
    return _tutor_instance


app = FastAPI(
    title="Sveti AI Tutor API",
    description="REST API for the Sveti homework coach",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Pydantic Models ====================

class ChatRequest(BaseModel):
    content: str
    subject: Optional[str] = None
    action_type: Optional[str] = None


class ChatResponse(BaseModel):
    subject: str
    action: Optional[str] = None
    dropped: bool = False
    error: bool = False
    user_message: Optional[Dict[str, Any]] = None
    replies: List[Dict[str, Any]] = []
    is_loading: bool = False


class LearningStyleUpdate(BaseModel):
    learning_style: str


class ConversationResponse(BaseModel):
    subject: str
    messages: List[Dict[str, Any]]
    suggest_clear: bool = False


class StateSummary(BaseModel):
    subject: str
    learning_style: str
    personalization: Dict[str, Any]
    is_loading: bool
    message_count: int
    model: str


# ==================== Helpers ====================

def require_subject(subject: str) -> str:
    key = normalize_subject(subject)
    if key is None:
        raise HTTPException(status_code=404, detail=f"Unknown subject: {subject}")
    return key


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Sveti AI Tutor API",
        "version": "1.0.0",
    }


@app.get("/api/subjects")
async def list_subjects():
    return {"subjects": get_subjects()}


@app.get("/api/learning-styles")
async def list_learning_styles():
    return {"learning_styles": [style.to_dict() for style in get_all_styles()]}


@app.get("/api/state", response_model=StateSummary)
async def get_state(tutor: SvetiTutor = Depends(get_tutor)):
    return StateSummary(**tutor.summary())


@app.put("/api/learning-style")
async def update_learning_style(update: LearningStyleUpdate, tutor: SvetiTutor = Depends(get_tutor)):
    try:
        style = tutor.set_learning_style(update.learning_style)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"learning_style": style.value}


@app.get("/api/conversations/{subject}", response_model=ConversationResponse)
async def get_conversation(subject: str, tutor: SvetiTutor = Depends(get_tutor)):
    key = require_subject(subject)
    messages = tutor.messages(key)
    return ConversationResponse(
        subject=key,
        messages=[to_display(msg) for msg in messages],
        suggest_clear=should_suggest_clear(messages)
    )


@app.post("/api/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, tutor: SvetiTutor = Depends(get_tutor)):
    """
    Run one chat turn for the current (or given) subject.

    Answers 409 while a previous turn is still in progress.
    """
    start = time.time()
    logger.request("POST", "/api/chat", data={
        "subject": request.subject or tutor.subject,
        "action_type": request.action_type,
        "length": len(request.content),
    })

    if request.subject:
        key = require_subject(request.subject)
        if key != tutor.subject:
            if tutor.is_loading:
                raise HTTPException(status_code=409, detail="A message is already being answered")
            logger.subsection(f"Switching subject {tutor.subject} -> {key}")
            tutor.switch_subject(key)

    try:
        result = await tutor.send_message(request.content, action_type=request.action_type)
    except RequestInFlightError as e:
        logger.warning("Chat turn rejected", data={"reason": str(e)})
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error("Chat turn failed", error=e)
        raise HTTPException(status_code=500, detail="Chat turn failed")

    logger.response(200, "/api/chat", duration=time.time() - start, data={
        "action": result.action.value if result.action else None,
        "replies": len(result.replies),
        "dropped": result.dropped,
        "error": result.error,
    })

    return ChatResponse(
        subject=result.subject,
        action=result.action.value if result.action else None,
        dropped=result.dropped,
        error=result.error,
        user_message=to_display(result.user_message) if result.user_message else None,
        replies=[to_display(reply) for reply in result.replies],
        is_loading=tutor.is_loading
    )


@app.delete("/api/conversations/{subject}")
async def clear_conversation(subject: str, tutor: SvetiTutor = Depends(get_tutor)):
    """Clear one subject's history; game personalization starts over too."""
    key = require_subject(subject)
    tutor.clear_conversation(key)
    logger.info("Conversation cleared", data={"subject": key})
    return {"status": "cleared", "subject": key}


if __name__ == "__main__":
    import uvicorn

    try:
        uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
