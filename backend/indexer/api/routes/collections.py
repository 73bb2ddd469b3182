"""
Collection, token and balance read endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from indexer.core.database import get_session
from indexer.models import Collection, ContractOwnership, TokenBalance, TokenInstance, Transfer
from indexer.schemas.entities import BalanceOut, CollectionOut, OwnershipOut, TokenOut, TransferOut
from indexer.services.identity import instance_id

router = APIRouter(tags=["collections"])


@router.get("/collections/{address}", response_model=CollectionOut)
async def get_collection(
    address: str,
    session: AsyncSession = Depends(get_session),
):
    """Collection record with its latest contract ownership, if any."""
    address = address.lower()
    collection = await session.get(Collection, address)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")

    out = CollectionOut.model_validate(collection)
    ownership = await session.get(ContractOwnership, address)
    if ownership is not None:
        out.ownership = OwnershipOut.model_validate(ownership)
    return out


@router.get("/collections/{address}/tokens/{token_id}", response_model=TokenOut)
async def get_token(
    address: str,
    token_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Token instance with every owner currently holding a positive balance."""
    key = instance_id(address, token_id)
    instance = await session.get(TokenInstance, key)
    if instance is None:
        raise HTTPException(status_code=404, detail="Token not found")

    result = await session.execute(
        select(TokenBalance)
        .where(TokenBalance.instance_id == key)
        .where(TokenBalance.amount > 0)
        .order_by(TokenBalance.owner)
    )
    out = TokenOut.model_validate(instance)
    out.balances = [BalanceOut.model_validate(row) for row in result.scalars()]
    return out


@router.get("/collections/{address}/tokens/{token_id}/transfers", response_model=list[TransferOut])
async def list_token_transfers(
    address: str,
    token_id: int,
    limit: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
):
    """Transfer audit rows for one token, newest first."""
    result = await session.execute(
        select(Transfer)
        .where(Transfer.instance_id == instance_id(address, token_id))
        .order_by(Transfer.block_number.desc(), Transfer.log_index.desc())
        .limit(limit)
    )
    return [TransferOut.model_validate(row) for row in result.scalars()]


@router.get("/accounts/{owner}/balances", response_model=list[BalanceOut])
async def list_account_balances(
    owner: str,
    session: AsyncSession = Depends(get_session),
):
    """Every token the owner holds a positive balance of."""
    result = await session.execute(
        select(TokenBalance)
        .where(TokenBalance.owner == owner.lower())
        .where(TokenBalance.amount > 0)
        .order_by(TokenBalance.instance_id)
    )
    return [BalanceOut.model_validate(row) for row in result.scalars()]
