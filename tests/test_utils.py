# tests/test_utils.py
"""Affichage coloré des tests longs (scénarios de bout en bout)."""


class Colors:
    HEADER = '\033[95m'
    OKGREEN = '\033[92m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'


def print_test_name(name):
    """Affiche le nom d'un test en cours."""
    print(f"\n{Colors.HEADER}===== RUNNING TEST: {name} ====={Colors.ENDC}")


def print_test_result(name, passed=True):
    """Affiche le résultat d'un test."""
    color, label = (Colors.OKGREEN, "PASSED") if passed else (Colors.FAIL, "FAILED")
    print(f"{color}===== TEST {label}: {name} ====={Colors.ENDC}")
