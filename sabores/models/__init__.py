# sabores/models/__init__.py

# 1. Base de datos (Origen de la clase declarativa)
from sabores.database import Base

# 2. Catálogo
from .products import Category, Product, ProductVariant, new_variant_id

# 3. Inventario (historial de ajustes)
from .inventory import StockAdjustment

# 4. Pedidos y pagos PIX
from .orders import Order, PaymentStatus, GATEWAY_COMPLETED_STATUSES

# 5. Administrador
from .users import AdminCredential
