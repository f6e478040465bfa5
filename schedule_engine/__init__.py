"""
Motor de optimizacion de horarios con validacion por tiempos de viaje.

Deriva una seleccion de bloques sin solapamientos a partir de un pool de
candidatos, respeta los bloques fijados y recalcula el inicio real de cada
bloque considerando el viaje entre ubicaciones.
"""

__version__ = "0.1.0"
