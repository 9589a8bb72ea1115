"""Shared FastAPI dependencies: the record store and the domain managers."""
import logging
from typing import Any, Dict

from fastapi import Depends, Request

from database import init_db
from listings import ListingManager
from orders import OrderManager
from reports import ReportManager
from reviews import ReviewManager
from store import RecordStore
from store.memory import MemoryRecordStore
from store.postgres import PostgresRecordStore
from users import UserManager
from verification import VerificationManager

logger = logging.getLogger(__name__)

async def open_store(settings: Dict[str, Any]) -> RecordStore:
    """Build the record store selected by `store_backend`."""
    if settings['store_backend'] == 'memory':
        logger.warning("Using the in-memory record store; data is lost on restart")
        return MemoryRecordStore()

    pool = await init_db(settings['db_url'])
    return PostgresRecordStore(pool, settings['kv_table'])

def get_store(request: Request) -> RecordStore:
    return request.app.state.store

def get_user_manager(request: Request, store: RecordStore = Depends(get_store)) -> UserManager:
    return UserManager(store, request.app.state.identity_provider)

def get_listing_manager(store: RecordStore = Depends(get_store)) -> ListingManager:
    return ListingManager(store)

def get_order_manager(store: RecordStore = Depends(get_store)) -> OrderManager:
    return OrderManager(store)

def get_review_manager(store: RecordStore = Depends(get_store)) -> ReviewManager:
    return ReviewManager(store)

def get_report_manager(store: RecordStore = Depends(get_store)) -> ReportManager:
    return ReportManager(store)

def get_verification_manager(store: RecordStore = Depends(get_store)) -> VerificationManager:
    return VerificationManager(store)
