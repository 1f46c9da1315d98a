"""
Travel Nurse Tax Engine
=======================

Financial and compliance calculations for travel nurses: federal income
tax under progressive brackets, comparison of job offers that mix taxable
wages with tax-free stipends, and tax home compliance tracking.

Modules:
    exceptions       - Engine error types
    config           - Frozen engine policy settings
    rates            - Versioned federal, state and GSA per-diem tables
    brackets         - Progressive federal tax calculation
    offers           - Job offer normalization and ranking
    compliance       - Tax home checklist scoring and the 30-day rule
    report_generator - Reports with CSV/JSON export
    cli              - Command-line interface
"""

__version__ = "1.0.0"
__author__ = "Taofik Bishi"

from nurse_tax_engine.config import EngineConfig
from nurse_tax_engine.exceptions import ConfigurationError, NurseTaxEngineError
from nurse_tax_engine.rates import FilingStatus, TaxTables
from nurse_tax_engine.brackets import TaxBracketEngine
from nurse_tax_engine.offers import JobOffer, OfferComparisonEngine, TaxSettings
from nurse_tax_engine.compliance import ComplianceScoringEngine, TaxHomeCompliance
from nurse_tax_engine.report_generator import ReportGenerator

__all__ = [
    "EngineConfig",
    "ConfigurationError",
    "NurseTaxEngineError",
    "FilingStatus",
    "TaxTables",
    "TaxBracketEngine",
    "JobOffer",
    "OfferComparisonEngine",
    "TaxSettings",
    "ComplianceScoringEngine",
    "TaxHomeCompliance",
    "ReportGenerator",
]
