from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ConfigDict
import logging
import traceback
from typing import Dict, Any, Optional, List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from config import LOG_LEVEL, CORS_ORIGINS, TRUNCATE_LENGTH

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

from query_builder import (
    QueryBuilderError,
    QueryModel,
    SchemaCatalog,
    compile_sql,
    decompile_sql,
    replay,
    suggest_joins,
)
from sql_utils import format_sql, truncate_sql

app = FastAPI(title="Query Builder Backend")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _catalog_from(schema: Optional[Dict[str, Any]]) -> Optional[SchemaCatalog]:
    """Schema payloads may arrive bare or inside the {"data": ...} envelope."""
    if not schema:
        return None
    return SchemaCatalog.from_payload(schema)


@app.get("/")
async def root():
    return {"message": "Query Builder Backend API", "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


class CompileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    state: Dict[str, Any] = {}
    schema_: Optional[Dict[str, Any]] = Field(None, alias="schema")


class CompileResponse(BaseModel):
    success: bool
    sql: Optional[str] = None
    error: Optional[str] = None


@app.post("/api/compile", response_model=CompileResponse)
async def compile_endpoint(req: CompileRequest):
    """Compile a persisted query state into SQL text."""
    try:
        model = QueryModel.from_state(req.state, _catalog_from(req.schema_))
        return CompileResponse(success=True, sql=compile_sql(model))
    except Exception as e:
        logger.error(f"[compile] Error: {e}")
        logger.error(traceback.format_exc())
        return CompileResponse(
            success=False,
            error=f"Failed to compile query: {str(e)}",
        )


class DecompileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sql: str
    schema_: Optional[Dict[str, Any]] = Field(None, alias="schema")


class DecompileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    state: Optional[Dict[str, Any]] = None
    statement_kind: Optional[str] = Field(None, alias="statementKind")
    complete: bool = False
    warnings: List[str] = []
    unsupported_features: List[str] = Field(default_factory=list, alias="unsupportedFeatures")
    unresolved_tables: List[str] = Field(default_factory=list, alias="unresolvedTables")
    error: Optional[str] = None


@app.post("/api/decompile", response_model=DecompileResponse, response_model_by_alias=True)
async def decompile_endpoint(req: DecompileRequest):
    """
    Parse SQL text back into query state for the visual builder.

    Parsing is best effort: whatever falls outside the builder's grammar is
    reported in warnings / unsupportedFeatures and ``complete`` is false.
    """
    try:
        result = decompile_sql(req.sql, _catalog_from(req.schema_))
        return DecompileResponse(
            success=True,
            state=result.model.to_state(),
            statement_kind=result.statement_kind,
            complete=result.complete,
            warnings=result.warnings,
            unsupported_features=result.unsupported_features,
            unresolved_tables=result.unresolved_tables,
        )
    except Exception as e:
        logger.error(f"[decompile] Unexpected error: {e}")
        logger.error(traceback.format_exc())
        return DecompileResponse(
            success=False,
            error=f"Failed to parse SQL: {str(e)}",
        )


class SuggestJoinsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    state: Dict[str, Any] = {}
    schema_: Dict[str, Any] = Field(..., alias="schema")


class SuggestJoinsResponse(BaseModel):
    success: bool
    joins: List[Dict[str, Any]] = []
    error: Optional[str] = None


@app.post("/api/suggest-joins", response_model=SuggestJoinsResponse)
async def suggest_joins_endpoint(req: SuggestJoinsRequest):
    """Candidate joins between the query's tables, from foreign keys and naming."""
    try:
        catalog = _catalog_from(req.schema_)
        model = QueryModel.from_state(req.state, catalog)
        joins = suggest_joins(model, catalog)
        return SuggestJoinsResponse(success=True, joins=[j.model_dump() for j in joins])
    except Exception as e:
        logger.error(f"[suggest_joins] Error: {e}")
        logger.error(traceback.format_exc())
        return SuggestJoinsResponse(success=False, error=str(e))


class ReplayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    actions: List[Dict[str, Any]]
    state: Optional[Dict[str, Any]] = None
    schema_: Optional[Dict[str, Any]] = Field(None, alias="schema")
    stop_on_error: bool = True


class ReplayResponse(BaseModel):
    success: bool
    state: Optional[Dict[str, Any]] = None
    sql: Optional[str] = None
    applied: int = 0
    rejected: List[Dict[str, Any]] = []
    error: Optional[str] = None


@app.post("/api/replay", response_model=ReplayResponse)
async def replay_endpoint(req: ReplayRequest):
    """
    Apply a timeline of builder actions and return the resulting state and SQL.

    Rejected mutations (duplicate table, alias collision, ...) are reported
    per action; ``success`` is false if any action was rejected.
    """
    try:
        catalog = _catalog_from(req.schema_)
        model = QueryModel.from_state(req.state, catalog) if req.state else None
        result = replay(req.actions, catalog=catalog, model=model, stop_on_error=req.stop_on_error)
        return ReplayResponse(
            success=not result.rejected,
            state=result.model.to_state(),
            sql=compile_sql(result.model),
            applied=result.applied,
            rejected=[r.model_dump() for r in result.rejected],
        )
    except QueryBuilderError as e:
        return ReplayResponse(success=False, error=str(e))
    except Exception as e:
        logger.error(f"[replay] Error: {e}")
        logger.error(traceback.format_exc())
        return ReplayResponse(success=False, error=f"Failed to replay actions: {str(e)}")


class FormatRequest(BaseModel):
    sql: str


class FormatResponse(BaseModel):
    success: bool
    sql: str = ""
    preview: str = ""


@app.post("/api/format", response_model=FormatResponse)
async def format_endpoint(req: FormatRequest):
    """Pretty-print SQL for the editor, plus a one-line preview for history lists."""
    return FormatResponse(
        success=True,
        sql=format_sql(req.sql),
        preview=truncate_sql(req.sql, TRUNCATE_LENGTH),
    )
