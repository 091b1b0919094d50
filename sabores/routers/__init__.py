# sabores/routers/__init__.py

# Esto expone los módulos para que "from sabores.routers import products" funcione
from . import auth
from . import products
from . import categories
from . import orders
from . import webhook
from . import inventory
from . import cache
from . import debug
