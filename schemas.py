"""
Database Schemas for the Daily Reflection API

Each Pydantic model below that represents a MongoDB collection is named after
it: the collection name is the lowercase of the class name (e.g., Reflection
-> "reflection"). StreakResult and AnalyticsResult are derived on request and
never stored.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class User(BaseModel):
    email: str = Field(..., description="Unique, lower-cased email")
    password_hash: str = Field(..., description="Password hash (bcrypt)")
    name: Optional[str] = Field(None, description="Display name")
    bio: Optional[str] = Field(None, description="Short bio")


class Reflection(BaseModel):
    user_id: str = Field(..., description="Owner user id")
    content: str = Field(..., min_length=1, description="Trimmed journal text")
    mood: Optional[str] = Field(None, description="Mood label, e.g. an emoji-prefixed word")
    tags: List[str] = Field(default_factory=list, description="Ordered short tags")
    date: str = Field(..., description="Calendar day of creation (YYYY-MM-DD), never recomputed")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")


class Prompt(BaseModel):
    user_id: str = Field(..., description="Owner user id")
    text: str = Field(..., min_length=1, description="Prompt text")
    category: str = Field("reflection", description="Prompt category")


class StreakResult(BaseModel):
    currentStreak: int = Field(0, ge=0)
    longestStreak: int = Field(0, ge=0)


class MoodCount(BaseModel):
    mood: str
    count: int


class WordCount(BaseModel):
    word: str
    count: int


class MoodPoint(BaseModel):
    date: str
    mood: str


class MonthCount(BaseModel):
    month: str
    count: int


class AnalyticsResult(BaseModel):
    totalWords: int = 0
    averageWordsPerDay: float = 0
    longestReflection: int = 0
    mostActiveDay: str = "None"
    moodDistribution: List[MoodCount] = Field(default_factory=list)
    wordFrequency: List[WordCount] = Field(default_factory=list)
    moodOverTime: List[MoodPoint] = Field(default_factory=list)
    reflectionsByMonth: List[MonthCount] = Field(default_factory=list)
