"""
Capa de Dominio - Motor de reservas de alquiler.

Lógica de negocio pura, sin dependencias de frameworks.

Estructura:
- entities/: Entidades (Booking, Listing, PaymentIntent, Dispute)
- value_objects/: Objetos de valor inmutables (DateRange)
- pricing.py: Motor de precios y reparto de comisiones
- state_machine.py: Grafos de transición de reservas y disputas
- errors.py: Excepciones específicas del dominio
"""
