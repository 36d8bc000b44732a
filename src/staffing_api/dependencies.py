"""Dependency injection factories for FastAPI."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from staffing_api.database import get_db
from staffing_api.services.contract_service import ContractService
from staffing_api.services.transfer_service import TransferService


def get_contract_service(db: AsyncSession = Depends(get_db)) -> ContractService:
    """Get ContractService instance."""
    return ContractService(db)


def get_transfer_service(db: AsyncSession = Depends(get_db)) -> TransferService:
    """Get TransferService instance."""
    return TransferService(db)
