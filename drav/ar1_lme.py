# -*- coding: utf-8 -*-
"""
Linear Mixed Effects model with a first-order autoregressive residual structure.

Model for individual i and glide t (glides ordered in time within individual):

    y_it = x_it' beta + u_i + e_it
    u_i ~ N(0, sigma_u^2)
    e_it = phi * e_i,t-1 + eta_it,   corr(e_is, e_it) = phi^|s - t|,   |phi| < 1

Residuals of different individuals are independent. The marginal covariance of
individual i is V_i = sigma_u^2 * J + sigma^2 * R_i(phi).

Fitting:
    beta is profiled out by generalised least squares and the negative
    (restricted) log-likelihood is minimised over
    theta = (log sigma_u, log sigma, atanh phi) with scipy.optimize.minimize.
    ML is used for comparing different fixed-effect structures, REML for the
    final inference.

statsmodels' MixedLM has no residual correlation structure, so the likelihood
is written out here; fixed-effect design matrices are built with patsy, the
same formula machinery statsmodels uses.
"""

import logging
import warnings
from typing import Dict, List, Optional, Any

import numpy as np
import pandas as pd
import patsy
from scipy import linalg, optimize, stats

import config
from drav.autocorrelation import compute_acf
from drav.exceptions import ConvergenceError, DataError

logger = logging.getLogger(__name__)

LOG_2PI = np.log(2 * np.pi)

# Number of covariance parameters: sigma_u, sigma, phi
N_COVARIANCE_PARAMS = 3


def build_formula(response: str, terms: List[str]) -> str:
    """Build a patsy formula from a response and a list of fixed-effect terms."""
    rhs = ' + '.join(terms) if terms else '1'
    return f"{response} ~ {rhs}"


def ar1_correlation(n: int, phi: float) -> np.ndarray:
    """AR(1) correlation matrix with entries phi^|s - t|."""
    lags = np.abs(np.subtract.outer(np.arange(n), np.arange(n)))
    return np.power(phi, lags)


class AR1MixedModel:
    """
    Random-intercept LME with AR(1) within-individual residual correlation.

    Attributes:
        formula (str): patsy formula for the fixed effects
        method (str): 'ML' or 'REML'
        group_col (str): Grouping column (random intercept)
        na_action (str): 'raise' (complete cases required) or 'drop'
        label (str): Dataset label used in error messages

    Example:
        >>> model = AR1MixedModel('Vair ~ center(max_depth) + center(BD)', data, method='REML')
        >>> result = model.fit()
        >>> result.coefficient_table()
    """

    def __init__(
        self,
        formula: str,
        data: pd.DataFrame,
        group_col: str = config.GROUP_COLUMN,
        method: str = 'REML',
        na_action: str = config.NA_ACTION,
        label: Optional[str] = None,
        optimizer: str = config.OPTIMIZER_METHOD,
        maxiter: int = config.OPTIMIZER_MAXITER,
        tol: float = config.OPTIMIZER_TOLERANCE
    ):
        method = method.upper()
        if method not in ('ML', 'REML'):
            raise ValueError(f"method must be 'ML' or 'REML', got '{method}'")
        if na_action not in ('raise', 'drop'):
            raise ValueError(f"na_action must be 'raise' or 'drop', got '{na_action}'")
        if group_col not in data.columns:
            raise DataError(f"Grouping column '{group_col}' not found", columns=[group_col])
        if not data.index.is_unique:
            raise DataError("Observation index must be unique")

        self.formula = formula
        self.method = method
        self.group_col = group_col
        self.na_action = na_action
        self.label = label
        self.optimizer = optimizer
        self.maxiter = maxiter
        self.tol = tol

        self._build_design(data)

    def _build_design(self, data: pd.DataFrame) -> None:
        """Build y, X and the per-individual row blocks."""
        if data[self.group_col].isna().any():
            if self.na_action == 'raise':
                raise DataError(
                    f"Missing values in grouping column '{self.group_col}' "
                    f"(formula '{self.formula}')",
                    columns=[self.group_col]
                )
            data = data[data[self.group_col].notna()]

        try:
            y, X = patsy.dmatrices(
                self.formula,
                data,
                NA_action=patsy.NAAction(on_NA=self.na_action),
                return_type='dataframe'
            )
        except patsy.PatsyError as e:
            raise DataError(
                f"Cannot build design for formula '{self.formula}'"
                f"{' on ' + self.label if self.label else ''}: {e}"
            ) from e

        if len(y) == 0:
            raise DataError(f"No complete observations for formula '{self.formula}'")

        self.design_info = X.design_info
        self.response = y.columns[0]
        self.exog_names = list(X.columns)
        self.row_labels = X.index
        self.endog = y.iloc[:, 0].to_numpy(dtype=float)
        self.exog = X.to_numpy(dtype=float)

        groups = data.loc[X.index, self.group_col]
        codes, levels = pd.factorize(groups, sort=False)
        self.group_labels = list(levels)
        self.groups = np.asarray(groups)
        self.group_rows = [np.flatnonzero(codes == k) for k in range(len(levels))]
        self._lags = [
            np.abs(np.subtract.outer(np.arange(len(rows)), np.arange(len(rows))))
            for rows in self.group_rows
        ]

        self.n_obs, self.k_fe = self.exog.shape
        self.n_groups = len(self.group_rows)

        if np.linalg.matrix_rank(self.exog) < self.k_fe:
            raise DataError(f"Fixed-effect design is rank deficient for formula '{self.formula}'")

        # Box on theta; flat outside so variances at the zero boundary still converge
        log_scale = np.log(max(float(np.std(self.endog)), 1e-8))
        self._theta_lower = np.array([log_scale - 12.0, log_scale - 12.0, -3.8])
        self._theta_upper = np.array([log_scale + 8.0, log_scale + 8.0, 3.8])

    # ------------------------------------------------------------------
    # Likelihood
    # ------------------------------------------------------------------

    def _unpack(self, theta: np.ndarray):
        theta = np.clip(theta, self._theta_lower, self._theta_upper)
        sigma2_u = np.exp(2 * theta[0])
        sigma2 = np.exp(2 * theta[1])
        phi = np.tanh(theta[2])
        return sigma2_u, sigma2, phi

    def _gls(self, theta: np.ndarray) -> Dict[str, Any]:
        """Whitened GLS pieces for a covariance parameter vector."""
        sigma2_u, sigma2, phi = self._unpack(theta)
        XtVX = np.zeros((self.k_fe, self.k_fe))
        XtVy = np.zeros(self.k_fe)
        logdet = 0.0
        blocks = []
        for rows, lags in zip(self.group_rows, self._lags):
            V = sigma2_u + sigma2 * np.power(phi, lags)
            L = linalg.cholesky(V, lower=True)
            Xw = linalg.solve_triangular(L, self.exog[rows], lower=True)
            yw = linalg.solve_triangular(L, self.endog[rows], lower=True)
            logdet += 2.0 * np.sum(np.log(np.diag(L)))
            XtVX += Xw.T @ Xw
            XtVy += Xw.T @ yw
            blocks.append((L, Xw, yw))
        beta = linalg.solve(XtVX, XtVy, assume_a='pos')
        quad = sum(float(np.sum((yw - Xw @ beta) ** 2)) for _, Xw, yw in blocks)
        return {'beta': beta, 'XtVX': XtVX, 'logdet': logdet, 'quad': quad, 'blocks': blocks}

    def _deviance(self, gls: Dict[str, Any]) -> float:
        """-2 * (restricted) log-likelihood."""
        if self.method == 'ML':
            return self.n_obs * LOG_2PI + gls['logdet'] + gls['quad']
        _, logdet_xtvx = np.linalg.slogdet(gls['XtVX'])
        return ((self.n_obs - self.k_fe) * LOG_2PI + gls['logdet']
                + logdet_xtvx + gls['quad'])

    def _objective(self, theta: np.ndarray) -> float:
        try:
            with np.errstate(over='raise', invalid='raise', divide='raise'):
                dev = self._deviance(self._gls(theta))
        except (linalg.LinAlgError, FloatingPointError, ValueError):
            return np.inf
        return dev if np.isfinite(dev) else np.inf

    def _start_values(self) -> np.ndarray:
        """OLS-based starting values for (log sigma_u, log sigma, atanh phi)."""
        beta_ols, *_ = np.linalg.lstsq(self.exog, self.endog, rcond=None)
        resid = self.endog - self.exog @ beta_ols
        total_var = max(float(np.var(resid)), 1e-8)
        group_means = np.array([resid[rows].mean() for rows in self.group_rows])
        between_var = float(np.var(group_means)) if self.n_groups > 1 else 0.0
        between_var = min(max(between_var, 0.1 * total_var), 0.9 * total_var)
        within_var = max(total_var - between_var, 0.1 * total_var)
        return np.array([0.5 * np.log(between_var), 0.5 * np.log(within_var), 0.1])

    def fit(self) -> 'AR1MixedResult':
        """
        Maximise the (restricted) likelihood.

        Returns:
            AR1MixedResult: Fitted model

        Raises:
            ConvergenceError: If the optimizer does not converge
        """
        theta0 = self._start_values()
        options = {'maxiter': self.maxiter}
        if self.optimizer == 'Nelder-Mead':
            options.update({
                'xatol': 1e-6,
                'fatol': self.tol,
                'initial_simplex': np.vstack([theta0, theta0 + 0.5 * np.eye(len(theta0))]),
            })

        with warnings.catch_warnings():
            warnings.simplefilter('ignore', RuntimeWarning)
            opt = optimize.minimize(self._objective, theta0, method=self.optimizer, options=options)

        if not opt.success or not np.isfinite(opt.fun):
            raise ConvergenceError(
                f"Likelihood optimisation did not converge: {opt.message}",
                formula=self.formula,
                dataset=self.label
            )

        gls = self._gls(opt.x)
        llf = -0.5 * self._deviance(gls)
        logger.debug(f"  Fitted '{self.formula}' ({self.method}): logLik = {llf:.3f}, "
                     f"nit = {opt.get('nit')}")
        return AR1MixedResult(self, opt.x, gls, llf, int(opt.get('nit', 0)))


class AR1MixedResult:
    """
    Fitted AR(1) random-intercept LME. Treat as immutable.

    Attributes:
        formula, method, label: Model specification
        params (pd.Series): Fixed-effect coefficients
        cov_params (pd.DataFrame): Covariance of the fixed effects
        sigma2_u (float): Random-intercept variance
        sigma2 (float): Residual variance
        phi (float): AR(1) correlation parameter
        llf (float): (Restricted) log-likelihood at the optimum
        row_labels (pd.Index): Labels of the rows used in the fit
    """

    def __init__(self, model: AR1MixedModel, theta: np.ndarray, gls: Dict[str, Any],
                 llf: float, n_iter: int):
        self.model = model
        self.formula = model.formula
        self.method = model.method
        self.label = model.label
        self.group_col = model.group_col
        self.design_info = model.design_info
        self.row_labels = model.row_labels
        self.n_obs = model.n_obs
        self.n_groups = model.n_groups
        self.theta = np.clip(theta, model._theta_lower, model._theta_upper)
        self.sigma2_u, self.sigma2, self.phi = model._unpack(self.theta)
        self.llf = float(llf)
        self.n_iter = n_iter
        self.converged = True

        names = model.exog_names
        self.params = pd.Series(gls['beta'], index=names, name='estimate')
        cov = linalg.inv(gls['XtVX'])
        self.cov_params = pd.DataFrame(cov, index=names, columns=names)
        self.bse = pd.Series(np.sqrt(np.diag(cov)), index=names, name='std_error')

        self.k_params = model.k_fe + N_COVARIANCE_PARAMS
        self.aic = -2.0 * self.llf + 2.0 * self.k_params
        self.bic = -2.0 * self.llf + self.k_params * np.log(self.n_obs)

        self._compute_random_effects()

    # ------------------------------------------------------------------
    # Random effects, fitted values and residuals
    # ------------------------------------------------------------------

    def _compute_random_effects(self) -> None:
        """BLUPs of the random intercepts and conditional residuals."""
        m = self.model
        beta = self.params.to_numpy()
        fixed = m.exog @ beta
        blups = np.zeros(m.n_groups)
        fitted = fixed.copy()
        normalized = np.zeros(m.n_obs)
        for k, (rows, lags) in enumerate(zip(m.group_rows, m._lags)):
            R = np.power(self.phi, lags)
            V = self.sigma2_u + self.sigma2 * R
            r = m.endog[rows] - fixed[rows]
            blups[k] = self.sigma2_u * np.sum(linalg.cho_solve(linalg.cho_factor(V, lower=True), r))
            fitted[rows] += blups[k]
            L_R = linalg.cholesky(R, lower=True)
            normalized[rows] = linalg.solve_triangular(L_R, r - blups[k], lower=True) / np.sqrt(self.sigma2)

        self.random_effects = pd.Series(blups, index=m.group_labels, name='random_intercept')
        self.fixed_fitted = pd.Series(fixed, index=self.row_labels, name='fixed_fitted')
        self.fittedvalues = pd.Series(fitted, index=self.row_labels, name='fitted')
        self.resid = pd.Series(m.endog - fitted, index=self.row_labels, name='resid')
        self.normalized_resid = pd.Series(normalized, index=self.row_labels, name='normalized_resid')

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    @property
    def df_resid(self) -> pd.Series:
        """
        Denominator degrees of freedom per coefficient.

        Coefficients of covariates constant within every individual are tested
        against n_groups - 1 - (#between terms); all others (and the intercept)
        against n_obs - n_groups - (#within terms).
        """
        m = self.model
        between = []
        for j, name in enumerate(m.exog_names):
            if name == 'Intercept':
                between.append(False)
                continue
            col = m.exog[:, j]
            between.append(all(np.ptp(col[rows]) == 0 for rows in m.group_rows))
        n_between = sum(between)
        n_within = sum(1 for name, b in zip(m.exog_names, between) if not b and name != 'Intercept')
        df_within = max(m.n_obs - m.n_groups - n_within, 1)
        df_between = max(m.n_groups - 1 - n_between, 1)
        return pd.Series([df_between if b else df_within for b in between],
                         index=m.exog_names, name='df')

    @property
    def tvalues(self) -> pd.Series:
        return (self.params / self.bse).rename('t_value')

    @property
    def pvalues(self) -> pd.Series:
        p = 2 * stats.t.sf(np.abs(self.tvalues.to_numpy()), self.df_resid.to_numpy())
        return pd.Series(p, index=self.params.index, name='p_value')

    def conf_int(self, level: float = config.CONFIDENCE_LEVEL) -> pd.DataFrame:
        """t-based confidence intervals for the fixed effects."""
        q = stats.t.ppf(0.5 + level / 2, self.df_resid.to_numpy())
        return pd.DataFrame({
            'ci_lower': self.params.to_numpy() - q * self.bse.to_numpy(),
            'ci_upper': self.params.to_numpy() + q * self.bse.to_numpy(),
        }, index=self.params.index)

    def coefficient_table(self, level: float = config.CONFIDENCE_LEVEL) -> pd.DataFrame:
        """
        Fixed-effect table.

        Returns:
            pd.DataFrame with columns term, estimate, std_error, df, t_value,
            p_value, ci_lower, ci_upper
        """
        table = pd.concat(
            [self.params, self.bse, self.df_resid, self.tvalues, self.pvalues, self.conf_int(level)],
            axis=1
        )
        table.index.name = 'term'
        return table.reset_index()

    def variance_components(self) -> Dict[str, float]:
        return {
            'sigma2_u': float(self.sigma2_u),
            'sigma2': float(self.sigma2),
            'phi': float(self.phi),
        }

    def r_squared(self) -> Dict[str, float]:
        """
        Marginal and conditional R² (Nakagawa & Schielzeth).

        Variance of the fixed-effect predictions against the random-intercept
        and (stationary) residual variances.
        """
        var_f = float(np.var(self.fixed_fitted.to_numpy(), ddof=1)) if self.n_obs > 1 else 0.0
        total = var_f + self.sigma2_u + self.sigma2
        return {
            'r2_marginal': var_f / total,
            'r2_conditional': (var_f + self.sigma2_u) / total,
        }

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, new_data: Optional[pd.DataFrame] = None, level: int = 0) -> pd.Series:
        """
        Predict the response.

        Args:
            new_data: Rows to predict (default: fitting data)
            level: 0 = population-level (fixed effects only),
                1 = add the BLUP of known individuals (0 for unknown ones)

        Returns:
            pd.Series of predictions aligned to new_data
        """
        if new_data is None:
            return (self.fixed_fitted if level == 0 else self.fittedvalues).copy()
        try:
            (X,) = patsy.build_design_matrices(
                [self.design_info], new_data,
                NA_action=patsy.NAAction(on_NA='raise'),
                return_type='dataframe'
            )
        except patsy.PatsyError as e:
            raise DataError(f"Cannot build prediction design for '{self.formula}': {e}") from e

        pred = X.to_numpy(dtype=float) @ self.params.to_numpy()
        if level == 1:
            if self.group_col not in new_data.columns:
                raise DataError(f"Level-1 prediction requires '{self.group_col}'",
                                columns=[self.group_col])
            re_map = dict(zip(self.random_effects.index, self.random_effects.to_numpy()))
            pred = pred + np.array([re_map.get(g, 0.0) for g in new_data.loc[X.index, self.group_col]])
        elif level != 0:
            raise ValueError(f"level must be 0 or 1, got {level}")
        return pd.Series(pred, index=X.index, name='predicted')

    def model_settings(self) -> Dict[str, Any]:
        """Constructor arguments (other than data and label) of the fitted model."""
        m = self.model
        return {
            'formula': self.formula,
            'group_col': m.group_col,
            'method': self.method,
            'na_action': m.na_action,
            'optimizer': m.optimizer,
            'maxiter': m.maxiter,
            'tol': m.tol,
        }

    def refit(self, data: pd.DataFrame, label: Optional[str] = None,
              method: Optional[str] = None) -> 'AR1MixedResult':
        """Fit the same formula and structure to another dataset."""
        settings = self.model_settings()
        if method is not None:
            settings['method'] = method
        return AR1MixedModel(data=data, label=label, **settings).fit()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def residual_acf(self, nlags: Optional[int] = None) -> pd.Series:
        """ACF of the normalized residuals (should be close to white noise)."""
        return compute_acf(self.normalized_resid.to_numpy(), nlags=nlags)

    def residuals_vs_fitted(self) -> pd.DataFrame:
        return pd.DataFrame({
            'fitted': self.fittedvalues,
            'normalized_resid': self.normalized_resid,
        })

    def qq_series(self) -> pd.DataFrame:
        """Normal Q-Q series of the normalized residuals."""
        (theoretical, ordered), _ = stats.probplot(self.normalized_resid.to_numpy(), dist='norm')
        return pd.DataFrame({'theoretical': theoretical, 'sample': ordered})

    def fit_statistics(self) -> Dict[str, Any]:
        return {
            'formula': self.formula,
            'method': self.method,
            'n_obs': self.n_obs,
            'n_groups': self.n_groups,
            'k_params': self.k_params,
            'loglik': self.llf,
            'aic': self.aic,
            'bic': self.bic,
            **self.variance_components(),
        }
