from .auth import router as auth_router
from .courses import router as courses_router
from .transactions import router as transactions_router
from .users import router as users_router

routes = [
    auth_router,
    users_router,
    courses_router,
    transactions_router,
]
