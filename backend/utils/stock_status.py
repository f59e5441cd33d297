from models.products import ProductStatus


def derive_product_status(stock_quantity: int, low_stock_threshold: int) -> ProductStatus:
    """
    out_of_stock at 0, low_stock below the threshold, in_stock otherwise.
    """
    if stock_quantity <= 0:
        return ProductStatus.OUT_OF_STOCK
    if stock_quantity < low_stock_threshold:
        return ProductStatus.LOW_STOCK
    return ProductStatus.IN_STOCK
