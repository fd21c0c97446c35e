# Volunteer skill and assistance request categories with their allowed subcategories

from typing import Dict, FrozenSet, Iterable

VOLUNTEER_CATEGORIES: Dict[str, FrozenSet[str]] = {
    "rescate_primeros_auxilios": frozenset({"personal_rescate", "asistente_rescate"}),
    "apoyo_medico": frozenset({"profesional_salud", "asistente_salud"}),
    "distribucion_logistica": frozenset(
        {"coordinador_logistica", "distribuidor_transportista", "apoyo_general_logistica"}
    ),
    "limpieza_recuperacion": frozenset({"trabajador_limpieza", "voluntario_limpieza"}),
    "apoyo_comunitario": frozenset({"consejero_social", "asistente_acompanamiento"}),
    "donaciones": frozenset({"coordinador_donaciones", "recolector_donaciones"}),
    "apoyo_administrativo": frozenset({"personal_administrativo", "asistente_registro"}),
    "comunicacion": frozenset({"voluntario_comunicacion", "asistente_difusion"}),
    "reparacion_vivienda_vehiculos": frozenset(
        {"albanileria", "fontaneria", "electricista", "mecanico", "suministro_materiales"}
    ),
    "servicios_educativos": frozenset({"apoyo_escolar", "cuidado_infantil"}),
    "apoyo_general": frozenset({"apoyo_tareas_basicas", "disponibilidad_general"}),
    "otros": frozenset({"otros_servicios"}),
}

ASSISTANCE_CATEGORIES: Dict[str, FrozenSet[str]] = {
    "alojamiento": frozenset({"alojamiento_temporal", "reubicacion"}),
    "alimentos": frozenset({"alimentos_emergencia", "articulos_higiene"}),
    "ropa_mobiliario": frozenset({"ropa", "mobiliario"}),
    "atencion_medica": frozenset({"atencion_medica_no_urgente", "apoyo_psicologico"}),
    "reparacion_vivienda": frozenset({"reparacion_danos", "materiales_construccion"}),
    "educacion_cuidado": frozenset({"apoyo_escolar", "cuidado_infantil"}),
    "asesoria_legal": frozenset({"recuperacion_documentos", "asesoria_seguros"}),
    "apoyo_comunitario": frozenset({"apoyo_comunitario_general", "acompanamiento"}),
    "empleo_capacitacion": frozenset({"busqueda_empleo", "capacitacion"}),
    "transporte": frozenset({"transporte_local", "reubicacion_vehiculos"}),
    "otros": frozenset({"otros_servicios"}),
}


def check_subcategories(catalog: Dict[str, FrozenSet[str]], category: str, subcategories: Iterable[str]) -> None:
    """Raises ValueError for an unknown category or a subcategory outside it (pydantic turns it into 422)."""
    allowed = catalog.get(category)
    if allowed is None:
        raise ValueError(f"Unknown category: {category}")
    unknown = sorted(set(subcategories) - allowed)
    if unknown:
        raise ValueError(f"Subcategories not in {category}: {', '.join(unknown)}")
