# consultify/endpoints/__init__.py

# Import routers from each endpoint file
from .consultations import router as consultations
from .messages import router as messages
from .prescriptions import router as prescriptions
from .translate import router as translate
from .users import router as users

__all__ = ["consultations", "messages", "prescriptions", "translate", "users"]
