"""
ROYALTY STATEMENT ENGINE
Tiered royalties, returns, co-author splits and advance recoupment per author and period.
"""

from .batch import BatchOrchestrator, calculate_from_dict, generate_from_dict
from .models import BatchResult, ComposedStatement, StatementCalculations, StatementInputs
from .processor import StatementCalculator, StatementComposer

__all__ = [
    'StatementCalculator',
    'StatementComposer',
    'BatchOrchestrator',
    'StatementInputs',
    'StatementCalculations',
    'ComposedStatement',
    'BatchResult',
    'generate_from_dict',
    'calculate_from_dict',
]
