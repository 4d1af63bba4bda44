"""
Test Service for the flagcore evaluator

This HTTP server wraps the local evaluator and exposes a standard interface
for the cross-implementation test harness, so that bucketing and matching
can be checked against other implementations.

Protocol:
- GET /  -> Health check
- POST / -> Execute command
- DELETE / -> Cleanup/shutdown
"""

import os
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from flagcore import (
    FlagCoreError,
    FlagDefinition,
    Inconclusive,
    LocalEvaluator,
    PropertyCondition,
    bucket_hash,
    match_property,
)

app = FastAPI()
evaluator = LocalEvaluator()


def make_response(
    value: Optional[Any] = None,
    inconclusive: Optional[bool] = None,
    reason: Optional[dict] = None,
    hash_value: Optional[float] = None,
    flags: Optional[dict] = None,
    fallback_keys: Optional[list] = None,
    success: Optional[bool] = None,
    error: Optional[str] = None,
    message: Optional[str] = None,
) -> dict:
    resp = {}
    if value is not None:
        resp["value"] = value
    if inconclusive is not None:
        resp["inconclusive"] = inconclusive
    if reason is not None:
        resp["reason"] = reason
    if hash_value is not None:
        resp["hash"] = hash_value
    if flags is not None:
        resp["flags"] = flags
    if fallback_keys is not None:
        resp["fallbackKeys"] = fallback_keys
    if success is not None:
        resp["success"] = success
    if error is not None:
        resp["error"] = error
    if message is not None:
        resp["message"] = message
    return resp


def handle_command(cmd: dict) -> dict:
    command = cmd.get("command")

    if command == "evaluate":
        flag_data = cmd.get("flag")
        if not flag_data:
            return make_response(error="ValidationError", message="flag is required")

        try:
            flag = FlagDefinition.from_dict(flag_data)
            detail = evaluator.evaluate_detail(flag, cmd.get("distinctId", ""), cmd.get("properties") or {})
        except FlagCoreError as e:
            return make_response(error=type(e).__name__, message=e.message)

        return make_response(
            value=detail.to_dict()["value"],
            inconclusive=detail.is_inconclusive,
            reason=detail.reason.to_dict(),
        )

    elif command == "matchProperty":
        condition_data = cmd.get("condition")
        if not condition_data:
            return make_response(error="ValidationError", message="condition is required")

        try:
            condition = PropertyCondition.from_dict(condition_data)
        except FlagCoreError as e:
            return make_response(error=type(e).__name__, message=e.message)

        outcome = match_property(condition, cmd.get("properties") or {})
        if isinstance(outcome, Inconclusive):
            return make_response(inconclusive=True, message=outcome.reason)
        return make_response(value=outcome, inconclusive=False)

    elif command == "hash":
        key = cmd.get("key")
        distinct_id = cmd.get("distinctId")
        if key is None or distinct_id is None:
            return make_response(error="ValidationError", message="key and distinctId are required")

        return make_response(hash_value=bucket_hash(key, distinct_id, cmd.get("salt", "")))

    elif command == "evaluateAll":
        flags = cmd.get("flags")
        if not isinstance(flags, list):
            return make_response(error="ValidationError", message="flags must be a list")

        values, fallback_keys = evaluator.evaluate_all(
            flags, cmd.get("distinctId", ""), cmd.get("properties") or {}
        )
        return make_response(flags=values, fallback_keys=fallback_keys)

    else:
        return make_response(error="UnknownCommand", message=f"Unknown command: {command}")


@app.get("/")
async def health_check():
    return {"success": True}


@app.post("/")
async def execute_command(request: Request):
    try:
        cmd = await request.json()
        result = handle_command(cmd)
        return JSONResponse(content=result)
    except Exception as e:
        return JSONResponse(
            content=make_response(error="ParseError", message=str(e)),
            status_code=400,
        )


@app.delete("/")
async def cleanup():
    return {"success": True}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8007"))
    print(f"[flagcore test-service] Listening on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")
