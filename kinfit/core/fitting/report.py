"""
Fit reports built on lmfit parameter objects.
"""

import math
import re

from lmfit import Parameters, fit_report

from .statistics import calculate_statistics, format_statistics


def _parameter_name(fitobject, ilocal, taken):
    """Unique, identifier-safe parameter name '<object>_<parameter>'."""
    base = re.sub(r'\W', '_', f"{fitobject.get_name()}_{fitobject.get_param_name(ilocal)}")
    if not base or base[0].isdigit():
        base = f"p_{base}"
    name = base
    suffix = 1
    while name in taken:
        name = f"{base}_{suffix}"
        suffix += 1
    return name


def export_parameters(fitter):
    """
    Export the fitted parameters of all fit objects as lmfit Parameters.

    Parameters
    ----------
    fitter : OPALFitter
        Fitter after fit() has been called

    Returns
    -------
    params : lmfit.Parameters
        One parameter per fit-object parameter, named '<object>_<parameter>'.
        Fixed parameters have vary=False. If the fitted covariance is valid,
        stderr and correl are filled from it.
    """
    params = Parameters()
    global_index = {}

    for fitobject in fitter.get_fit_objects():
        for ilocal in range(fitobject.get_npar()):
            name = _parameter_name(fitobject, ilocal, params)
            fixed = fitobject.is_param_fixed(ilocal)
            params.add(name, value=fitobject.get_param(ilocal), vary=not fixed)
            iglobal = fitobject.get_global_par_num(ilocal)
            if not fixed and iglobal >= 0:
                global_index[name] = iglobal

    cov = fitter.get_global_covariance_matrix()
    if cov is None:
        return params

    for name, i in global_index.items():
        variance = cov[i, i]
        params[name].stderr = math.sqrt(variance) if variance > 0 else 0.0

    for name, i in global_index.items():
        correl = {}
        for other, j in global_index.items():
            if other == name or cov[i, i] <= 0 or cov[j, j] <= 0:
                continue
            correl[other] = cov[i, j] / math.sqrt(cov[i, i] * cov[j, j])
        params[name].correl = correl

    return params


def get_fit_report(fitter, show_correl=True, min_correl=0.1):
    """
    Get detailed fit report.

    Parameters
    ----------
    fitter : OPALFitter
        Fitter after fit() has been called
    show_correl : bool, optional
        Include parameter correlations
    min_correl : float, optional
        Smallest correlation to report

    Returns
    -------
    str
        Fit report string
    """
    report = "[[ KINEMATIC FIT ]]\n"
    for i, constraint in enumerate(fitter.get_constraints()):
        report += f"Constraint {i} ({constraint.get_name()}): {constraint.get_value():.6g}\n"
    report += "\n"
    report += format_statistics(calculate_statistics(fitter))
    report += "\n\n"
    report += fit_report(export_parameters(fitter), show_correl=show_correl, min_correl=min_correl)
    return report
