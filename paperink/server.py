# paperink/server.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from paperink.core.config import CORS_ORIGINS
from paperink.core.database import engine, init_models

from paperink.api.root import router as root_router
from paperink.api.heroes import router as heroes_router
from paperink.api.stories import router as stories_router
from paperink.api.billing import router as billing_router
from paperink.api.webhooks import router as webhooks_router
from paperink.api.images import router as images_router
from paperink.api.reminders import router as reminders_router
from paperink.api.questions import router as questions_router
from paperink.api.demo import router as demo_router

# ================== SETUP ==================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("paperink")

app = FastAPI(title="Paper & Ink API")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid input", "details": details})


# ================== ROUTERS ==================

app.include_router(root_router)
app.include_router(heroes_router)
app.include_router(stories_router)
app.include_router(billing_router)
app.include_router(webhooks_router)
app.include_router(images_router)
app.include_router(reminders_router)
app.include_router(questions_router)
app.include_router(demo_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ================== LIFECYCLE ==================

@app.on_event("startup")
async def startup():
    await init_models()
    logger.info("Paper & Ink API ready")


@app.on_event("shutdown")
async def shutdown():
    await engine.dispose()
