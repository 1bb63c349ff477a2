"""
Work Diary - Team Work Journal Backend
FastAPI + MongoDB Implementation
"""
from fastapi import FastAPI, APIRouter, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional
import logging
import math
import uuid

from workdiary.auth import hash_password, verify_password, create_access_token, get_current_user
from workdiary.config import CORS_ORIGINS, LOG_LEVEL, PORT, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from workdiary.models import (
    AuthResponse, Comment, CommentCreate, DiaryContent, DiaryEntry, DiaryPage,
    Reaction, ReactionCreate, Todo, TodoCreate, TodoUpdate, UserCreate, UserLogin,
    UserRef, utcnow,
)
from workdiary.mongo_client import MongoClient, get_database, ensure_indexes
from workdiary.rules import apply_reaction, find_todo_index

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await ensure_indexes(get_database())
    yield
    # Shutdown
    MongoClient.close()

app = FastAPI(title="Work Diary", version="1.0.0", lifespan=lifespan)

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")


def get_db() -> AsyncIOMotorDatabase:
    return get_database()

def today() -> date:
    """Calendar day new entries are filed under (server local time)"""
    return date.today()


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})

# =====================================================================================
# HELPERS
# =====================================================================================

async def populate_entries(db: AsyncIOMotorDatabase, docs: List[dict]) -> List[DiaryEntry]:
    """Render stored diary documents with owner and comment authors filled in"""
    user_ids = set()
    for doc in docs:
        user_ids.add(doc["user_id"])
        user_ids.update(c["user_id"] for c in doc.get("comments", []))

    users = {}
    if user_ids:
        found = await db.users.find(
            {"id": {"$in": list(user_ids)}}, {"_id": 0, "password": 0}
        ).to_list(length=None)
        users = {u["id"]: UserRef(id=u["id"], name=u["name"], email=u.get("email")) for u in found}

    def ref(user_id: str) -> UserRef:
        return users.get(user_id) or UserRef(id=user_id, name="Unknown user")

    return [
        DiaryEntry(
            id=doc["id"],
            user=ref(doc["user_id"]),
            content=doc.get("content", ""),
            date=date.fromisoformat(doc["date"]),
            comments=[
                Comment(id=c["id"], user=ref(c["user_id"]), content=c["content"], created_at=c["created_at"])
                for c in doc.get("comments", [])
            ],
            reactions=[Reaction(**r) for r in doc.get("reactions", [])],
            todos=[Todo(**t) for t in doc.get("todos", [])],
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )
        for doc in docs
    ]

async def find_diary_or_404(db: AsyncIOMotorDatabase, diary_id: str) -> dict:
    diary = await db.diaries.find_one({"id": diary_id}, {"_id": 0})
    if not diary:
        raise HTTPException(status_code=404, detail="Diary entry not found")
    return diary

async def load_populated(db: AsyncIOMotorDatabase, diary_id: str) -> DiaryEntry:
    diary = await find_diary_or_404(db, diary_id)
    return (await populate_entries(db, [diary]))[0]

async def find_todo_or_404(db: AsyncIOMotorDatabase, diary_id: str, todo_ref: str):
    diary = await find_diary_or_404(db, diary_id)
    todos = [Todo(**t) for t in diary.get("todos", [])]
    index = find_todo_index(todos, todo_ref)
    if index is None:
        raise HTTPException(status_code=404, detail="Todo not found")
    return todos, index

# =====================================================================================
# USERS
# =====================================================================================

@api_router.post("/users/register", response_model=AuthResponse)
async def register(user_data: UserCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    email = user_data.email.strip().lower()
    existing_user = await db.users.find_one({"email": email})
    if existing_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = {
        "id": str(uuid.uuid4()),
        "email": email,
        "name": user_data.name.strip(),
        "password": hash_password(user_data.password),
        "created_at": utcnow(),
    }
    await db.users.insert_one(user)
    logger.info(f"Registered user {user['id']}")

    return AuthResponse(
        token=create_access_token(user["id"]),
        user=UserRef(id=user["id"], name=user["name"], email=email),
    )

@api_router.post("/users/login", response_model=AuthResponse)
async def login(login_data: UserLogin, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await db.users.find_one({"email": login_data.email.strip().lower()})
    if not user or not verify_password(login_data.password, user["password"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return AuthResponse(
        token=create_access_token(user["id"]),
        user=UserRef(id=user["id"], name=user["name"], email=user["email"]),
    )

@api_router.get("/users/me", response_model=UserRef)
async def get_me(user_id: str = Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await db.users.find_one({"id": user_id})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserRef(id=user["id"], name=user["name"], email=user["email"])

# =====================================================================================
# DIARY ENTRIES
# =====================================================================================

@api_router.post("/diaries", response_model=DiaryEntry)
async def save_today_entry(
    entry_data: DiaryContent,
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Create or update the caller's entry for today"""
    day = today().isoformat()
    now = utcnow()

    new_id = str(uuid.uuid4())

    # single atomic upsert so overlapping saves of the same day cannot both insert
    diary = await db.diaries.find_one_and_update(
        {"user_id": user_id, "date": day},
        {
            "$set": {"content": entry_data.content, "updated_at": now},
            "$setOnInsert": {
                "id": new_id,
                "comments": [],
                "reactions": [],
                "todos": [],
                "created_at": now,
            },
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    if diary["id"] == new_id:
        logger.info(f"Created diary {new_id} for user {user_id} on {day}")

    return await load_populated(db, diary["id"])

@api_router.get("/diaries", response_model=DiaryPage)
async def list_diaries(
    author_id: Optional[str] = Query(None, alias="userId"),
    day: Optional[date] = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Paginated entries, newest day first, optionally filtered by author and day"""
    query = {}
    if author_id:
        query["user_id"] = author_id
    if day:
        query["date"] = day.isoformat()

    total = await db.diaries.count_documents(query)
    docs = await db.diaries.find(query, {"_id": 0}) \
        .sort([("date", -1), ("created_at", -1)]) \
        .skip((page - 1) * limit) \
        .limit(limit) \
        .to_list(length=limit)

    return DiaryPage(
        diaries=await populate_entries(db, docs),
        total_pages=math.ceil(total / limit),
        current_page=page,
    )

@api_router.get("/diaries/{diary_id}", response_model=DiaryEntry)
async def get_diary(diary_id: str, user_id: str = Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return await load_populated(db, diary_id)

# =====================================================================================
# COMMENTS & REACTIONS
# =====================================================================================

@api_router.post("/diaries/{diary_id}/comments", response_model=DiaryEntry)
async def add_comment(
    diary_id: str,
    comment_data: CommentCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await find_diary_or_404(db, diary_id)
    now = utcnow()
    comment = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "content": comment_data.content,
        "created_at": now,
    }
    await db.diaries.update_one(
        {"id": diary_id},
        {"$push": {"comments": comment}, "$set": {"updated_at": now}}
    )
    return await load_populated(db, diary_id)

@api_router.post("/diaries/{diary_id}/reactions", response_model=DiaryEntry)
async def set_reaction(
    diary_id: str,
    reaction_data: ReactionCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Toggle or overwrite the caller's reaction on an entry"""
    diary = await find_diary_or_404(db, diary_id)
    reactions = apply_reaction(
        [Reaction(**r) for r in diary.get("reactions", [])], user_id, reaction_data.type
    )
    await db.diaries.update_one(
        {"id": diary_id},
        {"$set": {"reactions": [r.model_dump() for r in reactions], "updated_at": utcnow()}}
    )
    return await load_populated(db, diary_id)

# =====================================================================================
# TODOS
# =====================================================================================

@api_router.post("/diaries/{diary_id}/todos", response_model=DiaryEntry)
async def add_todo(
    diary_id: str,
    todo_data: TodoCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await find_diary_or_404(db, diary_id)
    now = utcnow()
    todo = Todo(id=str(uuid.uuid4()), content=todo_data.content, completed=False, created_at=now, updated_at=now)
    await db.diaries.update_one(
        {"id": diary_id},
        {"$push": {"todos": todo.model_dump()}, "$set": {"updated_at": now}}
    )
    return await load_populated(db, diary_id)

@api_router.put("/diaries/{diary_id}/todos/{todo_ref}", response_model=DiaryEntry)
async def update_todo(
    diary_id: str,
    todo_ref: str,
    todo_data: TodoUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Set a todo's completion flag; todo_ref is a todo id or a zero-based index"""
    todos, index = await find_todo_or_404(db, diary_id, todo_ref)
    now = utcnow()
    todos[index] = todos[index].model_copy(update={"completed": todo_data.completed, "updated_at": now})
    await db.diaries.update_one(
        {"id": diary_id},
        {"$set": {"todos": [t.model_dump() for t in todos], "updated_at": now}}
    )
    return await load_populated(db, diary_id)

@api_router.delete("/diaries/{diary_id}/todos/{todo_ref}", response_model=DiaryEntry)
async def delete_todo(
    diary_id: str,
    todo_ref: str,
    user_id: str = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    todos, index = await find_todo_or_404(db, diary_id, todo_ref)
    del todos[index]
    await db.diaries.update_one(
        {"id": diary_id},
        {"$set": {"todos": [t.model_dump() for t in todos], "updated_at": utcnow()}}
    )
    return await load_populated(db, diary_id)

# =====================================================================================
# HEALTH CHECK
# =====================================================================================

@api_router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "Work Diary is running"}

# Include the router in the main app
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def main():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)

if __name__ == "__main__":
    main()
