import os
from dotenv import load_dotenv

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from .auth import routers as auth_router
from .friendship import routers as friend_router
from .chat import routers as chat_router
from .chat import groups as group_router

from .core.dependencies import get_current_user
from .core.middleware import logging_middleware
from .utils.env_helper import env_list
from .utils.logging_config import setup_logging

load_dotenv()
setup_logging(os.getenv("LOG_LEVEL", "INFO"))

app = FastAPI(title="Huddle")
app.include_router(auth_router.router, prefix="/auth", tags=["Authentication"])
app.include_router(friend_router.router, prefix="/friends", tags=["Friendship"])
app.include_router(chat_router.router, prefix="/chat", tags=["Chat"])
app.include_router(group_router.router, prefix="/groups", tags=["Groups"])


origins = env_list(
    "CORS_ORIGINS",
    [
        "http://localhost:5173",
        "http://localhost:8080",
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(logging_middleware)


@app.get("/health")
def health():
    return {"status": "ok"}


# For testing auth purposes
@app.get("/protected")
def protected_route(user=Depends(get_current_user)):
    return {"message": f"Hello {user['username']}, you are authenticated!"}
