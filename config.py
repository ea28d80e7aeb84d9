# -*- coding: utf-8 -*-
"""
Configuración del proyecto DRAV (Diving Respiratory Air Volume)

Este archivo contiene todos los parámetros de configuración del análisis,
incluyendo rutas de datos, criterios de inclusión de planeos, especificación
del modelo mixto, selección de modelos, bootstrap y constantes físicas.
"""

import os

# =============================================================================
# CONFIGURACIÓN DE RUTAS
# =============================================================================

# Ruta base del proyecto
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
DATA_ROOT = os.path.abspath(os.path.join(PROJECT_ROOT, '..', 'data'))

# Datos de planeos (una fila por fase de planeo)
GLIDE_DATA_DIR = os.path.join(DATA_ROOT, 'glides')
GLIDE_DATA_FILE = os.path.join(GLIDE_DATA_DIR, 'drav_glides.csv')

# Directorio de resultados
RESULTS_DIR = os.path.join(PROJECT_ROOT, 'results', 'drav')
SENSITIVITY_RESULTS_DIR = os.path.join(PROJECT_ROOT, 'results', 'sensitivity')

# =============================================================================
# COLUMNAS DE DATOS
# =============================================================================

# Identificador del individuo (factor de agrupación del intercepto aleatorio)
GROUP_COLUMN = 'individual'

# Variable respuesta: volumen de aire estimado por unidad de masa
RESPONSE_COLUMN = 'Vair'

# Predictores de interés
PREDICTOR_COLUMNS = ['max_depth', 'BD']

# Columna opcional de orden temporal dentro de cada individuo (AR(1))
# Si no está presente se conserva el orden de filas del archivo
SEQUENCE_COLUMN = 'glide_start'

# Columnas requeridas en los datos de planeos
REQUIRED_COLUMNS = [
    'individual',
    'Vair',
    'max_depth',
    'BD',
    'avg_pitch',
    'glide_duration',
    'initial_depth',
    'cvar_pitch',
    'cvar_roll',
]

# Columnas opcionales (se toleran valores faltantes)
OPTIONAL_COLUMNS = ['depth_NB']

# =============================================================================
# CRITERIOS DE INCLUSIÓN DE PLANEOS
# =============================================================================

# Cada criterio: (columna, operador, umbral)
# Todos se aplican en conjunción; el orden no afecta el resultado
FILTER_CRITERIA = [
    ('avg_pitch', '<=', -60),      # Planeos de descenso pronunciado (grados)
    ('glide_duration', '>=', 10),  # Duración mínima del planeo (s)
    ('initial_depth', '<=', 30),   # Profundidad inicial máxima (m)
    ('cvar_pitch', '<', 0.1),      # Varianza circular del pitch
    ('cvar_roll', '<', 0.1),       # Varianza circular del roll
    ('Vair', '>', 0),              # Volumen de aire físicamente válido
]

# =============================================================================
# CONFIGURACIÓN DEL MODELO MIXTO
# =============================================================================

# Términos de efectos fijos del modelo completo (predictores centrados)
# La interacción requiere ambos efectos principales (marginalidad)
FULL_MODEL_TERMS = [
    'center(max_depth)',
    'center(BD)',
    'center(max_depth):center(BD)',
]

# Política de valores faltantes en variables del modelo
# 'raise' = fallar ante NA (comparabilidad de AIC), 'drop' = casos completos
NA_ACTION = 'raise'

# Optimizador de la verosimilitud (scipy.optimize.minimize)
OPTIMIZER_METHOD = 'Nelder-Mead'
OPTIMIZER_MAXITER = 4000
OPTIMIZER_TOLERANCE = 1e-8

# Nivel de confianza para intervalos de coeficientes
CONFIDENCE_LEVEL = 0.95

# =============================================================================
# SELECCIÓN DE MODELOS
# =============================================================================

# 'min_aic' = modelo de menor AIC
# 'simplest_within_delta' = modelo más simple dentro de DELTA_AIC del mínimo
SELECTION_POLICY = 'simplest_within_delta'
DELTA_AIC = 10.0

# Peso acumulado mínimo para considerar un término como retenido (≈1)
IMPORTANCE_THRESHOLD = 0.9

# =============================================================================
# BOOTSTRAP
# =============================================================================

N_BOOTSTRAP = 1000
BOOTSTRAP_SEED = 42
N_JOBS = 1  # joblib; -1 = todos los núcleos

# 'skip' = descartar iteraciones que no convergen, 'raise' = abortar
BOOTSTRAP_ON_FAILURE = 'skip'

# Puntos de la grilla de predicción
PREDICTION_GRID_POINTS = 100

# =============================================================================
# CONSTANTES FÍSICAS (FLOTABILIDAD NEUTRA)
# =============================================================================

GRAVITY = 9.81              # m/s^2
SEAWATER_DENSITY = 1025.0   # kg/m^3
AIR_DENSITY_SURFACE = 1.23  # kg/m^3
BODY_MASS = 300.0           # kg

# Profundidades de referencia para curvas teóricas (m)
REFERENCE_DEPTHS = [10, 25, 50, 100]

# Densidades de tejido para curvas teóricas (kg/m^3)
BD_CURVE_RANGE = (1020.0, 1060.0)
BD_CURVE_POINTS = 200

# =============================================================================
# ANÁLISIS DE SENSIBILIDAD (COEFICIENTE DE ARRASTRE)
# =============================================================================

# Un archivo por coeficiente de arrastre supuesto
DRAG_COEFFICIENT_FILES = {
    0.06: os.path.join(GLIDE_DATA_DIR, 'drav_glides_cd0.06.csv'),
    0.09: os.path.join(GLIDE_DATA_DIR, 'drav_glides_cd0.09.csv'),
    0.12: os.path.join(GLIDE_DATA_DIR, 'drav_glides_cd0.12.csv'),
    0.15: os.path.join(GLIDE_DATA_DIR, 'drav_glides_cd0.15.csv'),
}

# Re-aplicar criterios de inclusión en cada variante
SENSITIVITY_REFILTER = True

# Fórmula del modelo seleccionado para la sensibilidad
SENSITIVITY_TERMS = ['center(max_depth)', 'center(BD)']

# =============================================================================
# VALIDACIÓN DE CONFIGURACIÓN
# =============================================================================

def validar_configuracion():
    """Valida que la configuración sea consistente"""

    filter_columns = [col for col, _, _ in FILTER_CRITERIA]
    assert all(col in REQUIRED_COLUMNS for col in filter_columns), (
        "Algunos criterios de inclusión usan columnas no requeridas"
    )

    assert NA_ACTION in ('raise', 'drop'), f"NA_ACTION inválido: {NA_ACTION}"
    assert SELECTION_POLICY in ('min_aic', 'simplest_within_delta'), (
        f"SELECTION_POLICY inválida: {SELECTION_POLICY}"
    )
    assert BOOTSTRAP_ON_FAILURE in ('skip', 'raise'), (
        f"BOOTSTRAP_ON_FAILURE inválido: {BOOTSTRAP_ON_FAILURE}"
    )

    # Toda interacción requiere sus efectos principales en el modelo completo
    for term in FULL_MODEL_TERMS:
        if ':' in term:
            for main in term.split(':'):
                assert main in FULL_MODEL_TERMS, f"Falta efecto principal {main} para {term}"

    print("✅ Configuración validada correctamente")


if __name__ == "__main__":
    validar_configuracion()
    print("\n📊 Resumen de configuración:")
    print(f"   Términos del modelo completo: {len(FULL_MODEL_TERMS)}")
    print(f"   Criterios de inclusión: {len(FILTER_CRITERIA)}")
    print(f"   Réplicas bootstrap: {N_BOOTSTRAP}")
    print(f"   Variantes de arrastre: {sorted(DRAG_COEFFICIENT_FILES)}")
