# app/control_api.py
from typing import Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from loyalty.errors import InvalidOrderNumber, OrderExistsForOther, OrderExistsForUser
from loyalty.services.order_service import OrderService
from loyalty.services.reconcile_service import OrderReconciler


def build_app(reconciler: OrderReconciler,
              order_service: Optional[OrderService] = None,
              token: Optional[str] = None,
              ) -> FastAPI:
    app = FastAPI(title="Accrual Reconciler Control")

    def _auth(x_token: Optional[str]):
        if token and x_token != token:
            raise HTTPException(status_code=401, detail="unauthorized")

    class OrderReq(BaseModel):
        owner: str
        number: str

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    @app.get("/readyz")
    async def readyz():
        if not reconciler.running:
            raise HTTPException(status_code=503, detail=f"reconciler {reconciler.state.value}")
        return {"ok": True}

    @app.get("/status")
    async def get_status(x_token: Optional[str] = Header(default=None)):
        _auth(x_token)
        return reconciler.status()

    @app.post("/reconcile")
    async def reconcile_now(x_token: Optional[str] = Header(default=None)):
        _auth(x_token)
        outcome = await reconciler.run_once()
        return {"ok": True, "pass": outcome.summary(), "interval": reconciler.backoff.interval}

    @app.put("/orders", status_code=202)
    async def put_order(req: OrderReq, x_token: Optional[str] = Header(default=None)):
        _auth(x_token)
        if order_service is None:
            raise HTTPException(status_code=404, detail="order upload disabled")
        try:
            order = await order_service.submit_order(req.owner, req.number)
        except InvalidOrderNumber as e:
            raise HTTPException(status_code=422, detail=str(e))
        except OrderExistsForUser:
            return JSONResponse(status_code=200, content={"ok": True, "number": req.number, "status": "already uploaded"})
        except OrderExistsForOther as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"ok": True, "number": order.number, "status": order.status.value}

    @app.get("/balance/{owner}")
    async def get_balance(owner: str, x_token: Optional[str] = Header(default=None)):
        _auth(x_token)
        if order_service is None:
            raise HTTPException(status_code=404, detail="balance reads disabled")
        bal = await order_service.get_balance(owner)
        return {"owner": bal.owner, "current": str(bal.current), "accrued_total": str(bal.accrued_total)}

    return app
