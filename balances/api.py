import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from .config import settings
from .logging_config import configure_logging
from .models import GroupBalancesRequest, GroupBalancesResponse
from .service import BalanceService, BalanceServiceError

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Group Balances API",
    description=(
        "Net balances and who-owes-whom breakdowns for shared-expense groups. "
        "Money amounts are returned as exact decimal strings, e.g. \"25.00\"."
    ),
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

balance_service = BalanceService(settings)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "group-balances"}


@app.post("/groups/balances", response_model=GroupBalancesResponse, tags=["Balances"])
def get_group_balances(request: GroupBalancesRequest, net: Optional[bool] = None) -> GroupBalancesResponse:
    try:
        return balance_service.get_group_balances(request, net=net)
    except BalanceServiceError as e:
        logger.info("Rejected balances request for group %s: %s", request.group.id, e)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


handler = Mangum(app)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
