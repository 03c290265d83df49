from .shop import PurchaseReceipt, Shop, purchase

__all__ = ["PurchaseReceipt", "Shop", "purchase"]
