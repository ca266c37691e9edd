# Tolerancia única (en litros) para comparar sumas de cantidades:
# cobertura de distribuciones de una recepción y verificación de
# consistencia tanque vs. lotes. Capacidad y saldo se comparan exactos
# sobre valores ya redondeados.
QUANTITY_TOLERANCE = 0.01

# Las cantidades se guardan redondeadas a mililitros.
QUANTITY_PRECISION = 3


def round_quantity(value: float) -> float:
    return round(float(value), QUANTITY_PRECISION)
