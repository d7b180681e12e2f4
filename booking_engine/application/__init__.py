"""
Capa de Aplicación - Motor de reservas de alquiler.

Casos de uso e interfaces (puertos). Orquesta el dominio dentro de
transacciones y define los contratos con la infraestructura.

Estructura:
- use_cases/: Casos de uso por componente (listings, bookings, payments, disputes)
- interfaces/: Puertos (repositorios, gateway de pagos, notifier, reloj)
"""
