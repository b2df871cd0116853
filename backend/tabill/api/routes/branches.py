"""Branch routes. Scoped by owner only."""

from fastapi import APIRouter, HTTPException, Request, status

from tabill.core.config import settings
from tabill.core.rate_limit import limiter
from tabill.core.responses import list_response
from tabill.core.tenancy import CurrentOwner
from tabill.db.session import DbSession
from tabill.models.branch import Branch
from tabill.schemas.restaurant import BranchCreate, BranchResponse, BranchUpdate

router = APIRouter()


def _get_branch(db, owner_id: int, branch_id: int) -> Branch:
    branch = db.query(Branch).filter(Branch.id == branch_id, Branch.owner_id == owner_id).first()
    if not branch:
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch


@router.get("")
def list_branches(db: DbSession, owner: CurrentOwner):
    """List the owner's branches."""
    branches = db.query(Branch).filter(Branch.owner_id == owner.owner_id).order_by(Branch.id).all()
    return list_response([BranchResponse.model_validate(b).model_dump() for b in branches])


@router.post("", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_branch(request: Request, db: DbSession, owner: CurrentOwner, body: BranchCreate):
    branch = Branch(owner_id=owner.owner_id, **body.model_dump())
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return branch


@router.get("/{branch_id}", response_model=BranchResponse)
def get_branch(branch_id: int, db: DbSession, owner: CurrentOwner):
    return _get_branch(db, owner.owner_id, branch_id)


@router.put("/{branch_id}", response_model=BranchResponse)
@limiter.limit(settings.rate_limit_default)
def update_branch(
    request: Request, branch_id: int, db: DbSession, owner: CurrentOwner, body: BranchUpdate
):
    branch = _get_branch(db, owner.owner_id, branch_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(branch, field, value)
    db.commit()
    db.refresh(branch)
    return branch


@router.delete("/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
def delete_branch(request: Request, branch_id: int, db: DbSession, owner: CurrentOwner):
    """Delete a branch and everything scoped to it."""
    branch = _get_branch(db, owner.owner_id, branch_id)
    db.delete(branch)
    db.commit()
