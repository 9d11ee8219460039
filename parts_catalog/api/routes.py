from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from typing import Optional
from parts_catalog.services.catalog_service import CatalogService, InvalidPartId
from parts_catalog.services.reconciler import ReconcileMode
from parts_catalog.config import Config

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Parts Catalog API",
    description="Mechanical/electrical parts catalog with nested bill-of-materials references",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Single catalog service instance
catalog = CatalogService()


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Validation failed",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.get("/")
def root():
    return {"status": "running", "service": "Parts Catalog"}


@app.get("/api/parts")
async def get_all_parts(request: Request):
    """
    List parts with filtering and pagination
    Query parameters are read raw so malformed values degrade instead of failing
    """
    try:
        listing = await catalog.list_parts(request.query_params)
        page = listing.page
        return {
            "success": True,
            "count": page.count,
            "total": page.total,
            "pagination": page.pagination(),
            "filters": listing.predicate.to_dict() if listing.predicate is not None else "None",
            "data": [p.to_dict() for p in page.items],
        }
    except Exception as e:
        logger.error(f"API: List parts failed - {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error while fetching parts")


@app.post("/api/parts/generate", status_code=201)
async def generate_random_parts(count: Optional[int] = Query(None, ge=1)):
    """Generate a batch of random parts and link their child parts within the batch"""
    try:
        logger.info("API: Generation requested")
        result = await catalog.generate_parts(count)
        return {
            "success": True,
            "message": f"Successfully generated {len(result.created)} random parts",
            "count": len(result.created),
            "data": [p.to_dict() for p in result.sample],
        }
    except Exception as e:
        logger.error(f"API: Generation failed - {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error while generating random parts")


@app.post("/api/parts/replace-child-parts")
async def replace_child_parts(mode: str = ReconcileMode.RANDOM.value):
    """Rewrite child part entries against a pool of existing parts"""
    try:
        reconcile_mode = ReconcileMode(mode)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown mode '{mode}', expected one of: {', '.join(m.value for m in ReconcileMode)}",
        )

    try:
        logger.info(f"API: Child part repair requested ({reconcile_mode.value})")
        result = await catalog.repair_child_references(reconcile_mode)
        return {
            "success": True,
            "message": f"Updated child parts on {result.updated} parts",
            "updatedCount": result.updated,
        }
    except Exception as e:
        logger.error(f"API: Child part repair failed - {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error while replacing child parts")


@app.get("/api/parts/main-part/{main_part_id}")
async def get_main_part(main_part_id: str):
    """Get the part a child part entry references"""
    try:
        part = await catalog.get_main_part(main_part_id)
    except InvalidPartId:
        raise HTTPException(status_code=400, detail="Invalid part ID format")
    except Exception as e:
        logger.error(f"API: Main part lookup failed - {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error while fetching main part")

    if part is None:
        raise HTTPException(status_code=404, detail="Main part not found")
    return {"success": True, "data": part.to_dict()}


@app.get("/api/parts/{part_id}")
async def get_part_by_id(part_id: str):
    """Get part by ID"""
    try:
        part = await catalog.get_part(part_id)
    except InvalidPartId:
        raise HTTPException(status_code=400, detail="Invalid part ID format")
    except Exception as e:
        logger.error(f"API: Get part failed - {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error while fetching part")

    if part is None:
        raise HTTPException(status_code=404, detail="Part not found")
    return {"success": True, "data": part.to_dict()}


@app.on_event("startup")
async def startup():
    """Validate configuration and open the store on startup"""
    Config.validate()
    await catalog.start()
    logger.info("API server started")


@app.on_event("shutdown")
async def shutdown():
    """Cleanup on shutdown"""
    await catalog.stop()
    logger.info("API server stopped")
