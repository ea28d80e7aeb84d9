"""
Script para ejecutar todos los análisis principales en orden.

Este script ejecuta el pipeline completo de análisis DRAV:
1. Análisis principal (selección de modelos, ajuste REML, bootstrap, figuras)
2. Análisis de sensibilidad al coeficiente de arrastre
"""

import subprocess
import sys
from pathlib import Path
from datetime import datetime

PROJECT_ROOT = Path(__file__).resolve().parent


def run_script(script_path: str, description: str, timeout: int = 3600) -> bool:
    """
    Ejecuta un script Python y reporta el resultado.

    Args:
        script_path: Ruta al script (relativa a la raíz del proyecto)
        description: Descripción del análisis
        timeout: Tiempo máximo en segundos

    Returns:
        True si exitoso, False si falló
    """
    print("\n" + "=" * 80)
    print(f"EJECUTANDO: {description}")
    print(f"Script: {script_path}")
    print(f"Hora: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 80 + "\n")

    try:
        result = subprocess.run(
            [sys.executable, str(PROJECT_ROOT / script_path)],
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        print(f"\n⏱️ {description} - TIMEOUT (>{timeout // 60} min)")
        return False

    print(result.stdout)
    if result.returncode == 0:
        print(f"\n✅ {description} - COMPLETADO")
        return True
    print(f"\n❌ {description} - FALLÓ")
    print(f"Error: {result.stderr}")
    return False


def main():
    """Ejecuta todos los análisis en orden."""

    print("\n" + "=" * 80)
    print("PIPELINE COMPLETO DE ANÁLISIS DRAV")
    print("=" * 80)
    print(f"Inicio: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 80)

    analyses = [
        ('src/run_drav_analysis.py', '1. Análisis DRAV (Modelo Mixto AR(1))'),
        ('src/run_sensitivity_analysis.py', '2. Sensibilidad al Coeficiente de Arrastre'),
    ]

    results = {}
    for script_path, description in analyses:
        results[description] = run_script(script_path, description)

    print("\n" + "=" * 80)
    print("RESUMEN DE EJECUCIÓN")
    print("=" * 80)
    for description, success in results.items():
        status = "✅ EXITOSO" if success else "❌ FALLÓ"
        print(f"{status} - {description}")

    total = len(results)
    exitosos = sum(1 for success in results.values() if success)
    print(f"\nResultado: {exitosos}/{total} análisis completados exitosamente")
    print(f"Fin: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    return 0 if exitosos == total else 1


if __name__ == '__main__':
    sys.exit(main())
