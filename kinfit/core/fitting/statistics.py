"""
Fit probability and fit summary statistics.
"""

import numpy as np
from scipy import stats


def prob(chi2, dof):
    """
    Probability to observe a chi-square at least as large as chi2.

    Parameters
    ----------
    chi2 : float
        Chi-square value
    dof : int
        Number of degrees of freedom (must be positive)

    Returns
    -------
    float
        Upper-tail probability in [0, 1]
    """
    if dof <= 0:
        raise ValueError(f"Degrees of freedom must be positive, got {dof}")
    if not np.isfinite(chi2):
        return 0.0
    if chi2 <= 0:
        return 1.0
    return float(np.clip(stats.chi2.sf(chi2, dof), 0.0, 1.0))


def calculate_statistics(fitter):
    """
    Collect the result of a fit.

    Parameters
    ----------
    fitter : OPALFitter
        Fitter after fit() has been called

    Returns
    -------
    stats : dict
        Dictionary containing:
        - 'chi_squared': total chi-square
        - 'dof': degrees of freedom (ncon - nunm)
        - 'probability': fit probability
        - 'iterations': number of iterations
        - 'error_code', 'error_message': termination status
        - 'ncon', 'nunm', 'npar': problem dimensions
        - 'cov_valid': whether the fitted covariance is available
    """
    from .fitter import ERROR_MESSAGES

    error_code = fitter.get_error()
    return {
        'chi_squared': fitter.get_chi2(),
        'dof': fitter.get_dof(),
        'probability': fitter.get_probability(),
        'iterations': fitter.get_iterations(),
        'error_code': error_code,
        'error_message': ERROR_MESSAGES.get(error_code, 'unknown'),
        'ncon': fitter.get_ncon(),
        'nunm': fitter.get_nunm(),
        'npar': fitter.get_npar(),
        'cov_valid': fitter.cov_valid,
    }


def format_statistics(stats):
    """
    Format statistics for display.

    Parameters
    ----------
    stats : dict
        Statistics dictionary from calculate_statistics()

    Returns
    -------
    str
        Formatted statistics string
    """
    lines = []
    lines.append("=== Fit Statistics ===")
    lines.append(f"Status = {stats.get('error_code', -1)} ({stats.get('error_message', '')})")
    lines.append(f"χ² = {stats.get('chi_squared', 0):.6e}")
    lines.append(f"Degrees of freedom = {stats.get('dof', 0)}")
    lines.append(f"Probability = {stats.get('probability', 0):.6f}")
    lines.append(f"Iterations = {stats.get('iterations', 0)}")
    lines.append(f"N constraints = {stats.get('ncon', 0)}")
    lines.append(f"N unmeasured = {stats.get('nunm', 0)}")
    lines.append(f"N parameters = {stats.get('npar', 0)}")
    lines.append(f"Covariance valid = {stats.get('cov_valid', False)}")

    return '\n'.join(lines)
