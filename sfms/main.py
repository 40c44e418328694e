from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sfms.api.v1.classes.router import router as classes_router
from sfms.api.v1.fee_types.router import router as fee_types_router
from sfms.api.v1.ledger.router import router as ledger_router
from sfms.api.v1.payments.router import router as payments_router
from sfms.api.v1.students.router import router as students_router
from sfms.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="School Fee Management")

    # CORS: the staff web app calls this API from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(classes_router)
    app.include_router(fee_types_router)
    app.include_router(students_router)
    app.include_router(payments_router)
    app.include_router(ledger_router)

    return app


app = create_app()
