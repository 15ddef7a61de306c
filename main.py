import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import config
from auth import generate_token, get_current_user_id, hash_password, verify_password
from database import (
    connect,
    create_document,
    get_db,
    get_documents,
    get_reflections,
    init_indexes,
    to_object_id,
)
from insights import (
    analytics_window_start,
    calculate_streaks,
    compute_analytics,
    matches_query,
    writing_summary,
)
from schemas import AnalyticsResult, Prompt, Reflection, StreakResult, User

logger = logging.getLogger(__name__)

# ---------- Default prompts ----------
DEFAULT_PROMPTS = [
    {"text": "What are you most grateful for today?", "category": "gratitude"},
    {"text": "What challenged you today and how did you overcome it?", "category": "growth"},
    {"text": "How did you show kindness to yourself or others today?", "category": "kindness"},
    {"text": "What emotions did you experience today? How did they guide your actions?", "category": "emotions"},
    {"text": "What progress did you make toward your goals today?", "category": "goals"},
    {"text": "What did you learn about yourself today?", "category": "self-discovery"},
    {"text": "How did you take care of your physical and mental health today?", "category": "wellness"},
    {"text": "What moment today brought you the most joy?", "category": "joy"},
    {"text": "What would you do differently if you could relive today?", "category": "reflection"},
    {"text": "How did you connect with others today?", "category": "relationships"},
]


class Credentials(BaseModel):
    email: str
    password: str


class Register(Credentials):
    name: Optional[str] = None


class CreateReflection(BaseModel):
    content: str
    mood: Optional[str] = None
    tags: List[str] = []


class UpdateReflection(BaseModel):
    content: str


class CreatePrompt(BaseModel):
    text: str
    category: Optional[str] = None


class UpdateProfile(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None


def current_user(user_id: str = Depends(get_current_user_id)) -> ObjectId:
    if not ObjectId.is_valid(user_id):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return ObjectId(user_id)


def today():
    return datetime.utcnow().date()


def require_text(value: Optional[str], detail: str) -> str:
    text = (value or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail=detail)
    return text


def reflection_out(doc) -> dict:
    return {
        "_id": str(doc["_id"]),
        "content": doc["content"],
        "mood": doc.get("mood"),
        "tags": doc.get("tags") or [],
        "date": doc["date"],
        "createdAt": doc["created_at"],
    }


def profile_out(db: Database, user: dict) -> dict:
    reflections = get_reflections(db, user["_id"])
    streaks = calculate_streaks((r["date"] for r in reflections), today())
    return {
        "id": str(user["_id"]),
        "email": user["email"],
        "name": user.get("name"),
        "bio": user.get("bio"),
        "createdAt": user.get("created_at"),
        "totalReflections": len(reflections),
        **streaks,
    }


def set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        config.TOKEN_COOKIE,
        token,
        max_age=config.TOKEN_TTL_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_indexes(app.state.db)
    except PyMongoError as e:
        logger.error("Could not create indexes: %s", e)
    yield


def create_app(db: Optional[Database] = None) -> FastAPI:
    app = FastAPI(title="Daily Reflection API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if db is None:
        db = connect(config.DATABASE_URL, config.DATABASE_NAME)
    app.state.db = db

    @app.exception_handler(PyMongoError)
    def database_error(request: Request, exc: PyMongoError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=503, content={"detail": "Database unavailable"})

    @app.exception_handler(Exception)
    def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/")
    def read_root():
        return {"message": "Daily Reflection Backend Running"}

    @app.get("/test")
    def test_database(db: Database = Depends(get_db)):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": None,
            "database_name": None,
            "connection_status": "Not Connected",
            "collections": []
        }
        response["database_name"] = db.name
        try:
            response["collections"] = db.list_collection_names()
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
        except PyMongoError as e:
            response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"

        response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
        return response

    # ---------- Auth ----------
    @app.post("/api/auth/register", status_code=201)
    def register(payload: Register, response: Response, db: Database = Depends(get_db)):
        email = require_text(payload.email, "Email is required").lower()
        if len(payload.password) < 6:
            raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
        if len(payload.password.encode()) > 72:
            raise HTTPException(status_code=400, detail="Password must be at most 72 bytes")
        if db["user"].find_one({"email": email}):
            raise HTTPException(status_code=409, detail="User already exists")
        user = User(email=email, password_hash=hash_password(payload.password),
                    name=(payload.name or "").strip() or None)
        try:
            user_id = create_document(db, "user", user.model_dump())
        except DuplicateKeyError:
            raise HTTPException(status_code=409, detail="User already exists")
        logger.info("Registered user %s", user_id)
        token = generate_token(user_id)
        set_token_cookie(response, token)
        return {"user": {"id": user_id, "email": email}, "token": token}

    @app.post("/api/auth/login")
    def login(payload: Credentials, response: Response, db: Database = Depends(get_db)):
        doc = db["user"].find_one({"email": payload.email.strip().lower()})
        if not doc or not verify_password(payload.password, doc.get("password_hash", "")):
            raise HTTPException(status_code=401, detail="Invalid email or password")
        user_id = str(doc["_id"])
        logger.info("User %s logged in", user_id)
        token = generate_token(user_id)
        set_token_cookie(response, token)
        return {"user": {"id": user_id, "email": doc["email"]}, "token": token}

    @app.post("/api/auth/logout")
    def logout(response: Response):
        response.delete_cookie(config.TOKEN_COOKIE)
        return {"message": "Logged out"}

    @app.get("/api/auth/me")
    def me(user_id: ObjectId = Depends(current_user), db: Database = Depends(get_db)):
        doc = db["user"].find_one({"_id": user_id}, {"password_hash": 0})
        if not doc:
            raise HTTPException(status_code=404, detail="User not found")
        return {"id": str(doc["_id"]), "email": doc["email"]}

    # ---------- Reflections ----------
    @app.get("/api/reflections")
    def list_reflections(user_id: ObjectId = Depends(current_user), db: Database = Depends(get_db)):
        items = get_reflections(db, user_id, newest_first=True)
        return [reflection_out(it) for it in items]

    @app.post("/api/reflections", status_code=201)
    def create_reflection(payload: CreateReflection, user_id: ObjectId = Depends(current_user),
                          db: Database = Depends(get_db)):
        now = datetime.utcnow()
        reflection = Reflection(
            user_id=str(user_id),
            content=require_text(payload.content, "Content is required"),
            mood=payload.mood or None,
            tags=[t.strip() for t in payload.tags if t and t.strip()],
            date=now.date().isoformat(),
            created_at=now,
        )
        doc = {**reflection.model_dump(), "user_id": user_id}
        reflection_id = create_document(db, "reflection", doc)
        created = db["reflection"].find_one({"_id": ObjectId(reflection_id)})
        return reflection_out(created)

    @app.get("/api/reflections/search")
    def search_reflections(q: Optional[str] = None, user_id: ObjectId = Depends(current_user),
                           db: Database = Depends(get_db)):
        query = require_text(q, "Search query is required")
        items = get_reflections(db, user_id, newest_first=True)
        return [reflection_out(it) for it in items if matches_query(it, query)]

    @app.get("/api/reflections/stats")
    def reflection_stats(user_id: ObjectId = Depends(current_user), db: Database = Depends(get_db)):
        return writing_summary(get_reflections(db, user_id), today())

    @app.get("/api/reflections/streaks", response_model=StreakResult)
    def reflection_streaks(user_id: ObjectId = Depends(current_user), db: Database = Depends(get_db)):
        dates = db["reflection"].distinct("date", {"user_id": user_id})
        return calculate_streaks(dates, today())

    @app.put("/api/reflections/{reflection_id}")
    def update_reflection(reflection_id: str, payload: UpdateReflection,
                          user_id: ObjectId = Depends(current_user), db: Database = Depends(get_db)):
        content = require_text(payload.content, "Content is required")
        res = db["reflection"].find_one_and_update(
            {"_id": to_object_id(reflection_id), "user_id": user_id},
            {"$set": {"content": content, "updated_at": datetime.utcnow()}},
            return_document=True,
        )
        if not res:
            raise HTTPException(status_code=404, detail="Reflection not found")
        return reflection_out(res)

    @app.delete("/api/reflections/{reflection_id}")
    def delete_reflection(reflection_id: str, user_id: ObjectId = Depends(current_user),
                          db: Database = Depends(get_db)):
        res = db["reflection"].delete_one({"_id": to_object_id(reflection_id), "user_id": user_id})
        if res.deleted_count == 0:
            raise HTTPException(status_code=404, detail="Reflection not found")
        return {"message": "Reflection deleted successfully"}

    # ---------- Analytics ----------
    @app.get("/api/analytics", response_model=AnalyticsResult)
    def analytics(days: str = Query("30"), user_id: ObjectId = Depends(current_user),
                  db: Database = Depends(get_db)):
        try:
            since = analytics_window_start(days, datetime.utcnow())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return compute_analytics(get_reflections(db, user_id, since=since))

    # ---------- Prompts ----------
    @app.get("/api/prompts")
    def list_prompts(user_id: ObjectId = Depends(current_user), db: Database = Depends(get_db)):
        now = datetime.utcnow()
        defaults = [
            {"_id": f"default_{i}", **p, "isDefault": True, "createdAt": now}
            for i, p in enumerate(DEFAULT_PROMPTS)
        ]
        custom = get_documents(db, "prompt", {"user_id": user_id}, sort=[("created_at", -1)])
        return defaults + [
            {"_id": str(p["_id"]), "text": p["text"], "category": p["category"],
             "isDefault": False, "createdAt": p["created_at"]}
            for p in custom
        ]

    @app.post("/api/prompts", status_code=201)
    def create_prompt(payload: CreatePrompt, user_id: ObjectId = Depends(current_user),
                      db: Database = Depends(get_db)):
        prompt = Prompt(
            user_id=str(user_id),
            text=require_text(payload.text, "Prompt text is required"),
            category=(payload.category or "").strip() or "reflection",
        )
        prompt_id = create_document(db, "prompt", {**prompt.model_dump(), "user_id": user_id})
        doc = db["prompt"].find_one({"_id": ObjectId(prompt_id)})
        return {"_id": prompt_id, "text": doc["text"], "category": doc["category"],
                "isDefault": False, "createdAt": doc["created_at"]}

    @app.delete("/api/prompts/{prompt_id}")
    def delete_prompt(prompt_id: str, user_id: ObjectId = Depends(current_user),
                      db: Database = Depends(get_db)):
        if prompt_id.startswith("default_"):
            raise HTTPException(status_code=400, detail="Cannot delete default prompts")
        res = db["prompt"].delete_one({"_id": to_object_id(prompt_id), "user_id": user_id})
        if res.deleted_count == 0:
            raise HTTPException(status_code=404, detail="Prompt not found")
        return {"message": "Prompt deleted successfully"}

    # ---------- Profile ----------
    @app.get("/api/profile")
    def get_profile(user_id: ObjectId = Depends(current_user), db: Database = Depends(get_db)):
        doc = db["user"].find_one({"_id": user_id}, {"password_hash": 0})
        if not doc:
            raise HTTPException(status_code=404, detail="User not found")
        return profile_out(db, doc)

    @app.put("/api/profile")
    def update_profile(payload: UpdateProfile, user_id: ObjectId = Depends(current_user),
                       db: Database = Depends(get_db)):
        update = {
            "name": (payload.name or "").strip() or None,
            "bio": (payload.bio or "").strip() or None,
            "updated_at": datetime.utcnow(),
        }
        res = db["user"].find_one_and_update(
            {"_id": user_id}, {"$set": update}, projection={"password_hash": 0}, return_document=True
        )
        if not res:
            raise HTTPException(status_code=404, detail="User not found")
        return profile_out(db, res)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
