# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Flow Field Plotter - Rendering of Grid Fields and Trajectories

Interactive Plotly rendering of the results of FlowFieldAnalysis and of
trajectory arrays. The plotter holds no figure state: every method
builds and returns a new go.Figure.

Main Class
----------
FlowFieldPlotter
    plot_scalar_field() : Heatmap of a GridField, animated over time
    plot_stream_function() : Filled contours of the stream function
    plot_velocity() : Quiver plot of a VelocityField
    plot_polar() : Velocity angle heatmap with speed contours
    plot_trajectories() : Phase portrait of (2, L, N) trajectories

Usage
-----
>>> flow = DoubleGyre()
>>> fig = flow.plotter.plot_scalar_field(
...     flow.fields.vorticity(t=np.linspace(0, 10, 21)), divergent=True
... )
>>> fig.show()
>>>
>>> x, t = flow.trajectory(flow.sample_domain_random(20), T=10.0)
>>> fig = flow.plotter.plot_trajectories(x)
"""

from typing import List, Optional, Tuple

import numpy as np
import plotly.figure_factory as ff
import plotly.graph_objects as go

from contflows.systems.base.utils.flow_validator import ValidationError
from contflows.types.fields import GridField, PolarField, VelocityField
from contflows.types.trajectories import StateTrajectory

PLOTLY_COLORS = [
    "#636EFA",
    "#EF553B",
    "#00CC96",
    "#AB63FA",
    "#FFA15A",
    "#19D3F3",
    "#FF6692",
    "#B6E880",
    "#FF97FF",
    "#FECB52",
]


class FlowFieldPlotter:
    """
    Plotly rendering of flow fields.

    Attributes
    ----------
    label : str
        Flow name used in default titles

    Examples
    --------
    >>> plotter = FlowFieldPlotter(label="Double gyre")
    >>> fig = plotter.plot_velocity(flow.fields.velocity(t=0.0))
    >>> fig.show()
    """

    def __init__(self, label: str = ""):
        self.label = label

    # =========================================================================
    # Scalar Fields
    # =========================================================================

    def plot_scalar_field(
        self,
        field: GridField,
        divergent: bool = False,
        title: Optional[str] = None,
        colorscale: Optional[str] = None,
        **kwargs,
    ) -> go.Figure:
        """
        Heatmap of a scalar grid field.

        Parameters
        ----------
        field : GridField
            Result of a FlowFieldAnalysis method
        divergent : bool
            Symmetric colour range around zero with a divergent scale
        title : Optional[str]
            Plot title (default: flow label and field name)
        colorscale : Optional[str]
            Plotly colour scale (default: 'RdBu_r' if divergent else 'Viridis')

        Returns
        -------
        go.Figure
            One heatmap; several times produce animation frames with a
            time slider

        Examples
        --------
        >>> fig = plotter.plot_scalar_field(flow.fields.divergence(0.0))
        """
        xi, yi = self._axes(field)
        values = np.asarray(field["values"], dtype=float)
        times = np.atleast_1d(field["t"])
        colorscale = colorscale or ("RdBu_r" if divergent else "Viridis")

        zrange = {}
        if divergent:
            finite = values[np.isfinite(values)]
            bound = min(np.abs(finite).max(), 1e6) if finite.size else 1.0
            zrange = {"zmin": -bound, "zmax": bound, "zmid": 0.0}

        def heatmap(k: int) -> go.Heatmap:
            return go.Heatmap(
                x=xi,
                y=yi,
                z=values[:, :, k].T,  # Heatmap rows follow y
                colorscale=colorscale,
                colorbar=dict(title=field["name"]),
                **zrange,
            )

        fig = go.Figure(data=[heatmap(0)])
        self._add_time_frames(fig, times, heatmap)
        self._layout(fig, title or self._title(field["name"], times), **kwargs)
        return fig

    def plot_stream_function(
        self,
        field: GridField,
        n_levels: int = 20,
        title: Optional[str] = None,
        **kwargs,
    ) -> go.Figure:
        """
        Filled contours of the stream function (first time only).

        Contour levels span the 5th to 95th percentile of the values, so
        singular peaks do not flatten the picture.
        """
        xi, yi = self._axes(field)
        values = np.asarray(field["values"], dtype=float)[:, :, 0]
        finite = values[np.isfinite(values)]
        if finite.size == 0:
            raise ValidationError("Stream function has no finite values to plot")
        low, high = np.percentile(finite, [5, 95])
        size = (high - low) / max(n_levels, 1) or 1.0

        fig = go.Figure(
            go.Contour(
                x=xi,
                y=yi,
                z=values.T,
                contours=dict(start=low, end=high, size=size, coloring="fill"),
                colorscale="Cividis",
                colorbar=dict(title=field["name"]),
            )
        )
        times = np.atleast_1d(field["t"])
        self._layout(fig, title or self._title(field["name"], times[:1]), **kwargs)
        return fig

    # =========================================================================
    # Vector Fields
    # =========================================================================

    def plot_velocity(
        self,
        field: VelocityField,
        time_index: int = 0,
        scale: float = 0.1,
        normalize: bool = False,
        title: Optional[str] = None,
        **kwargs,
    ) -> go.Figure:
        """
        Quiver plot of the velocity at one time.

        Parameters
        ----------
        field : VelocityField
            Result of FlowFieldAnalysis.velocity
        time_index : int
            Index into field["t"]
        scale : float
            Arrow length scale
        normalize : bool
            Draw unit arrows (direction only)
        """
        X = np.asarray(field["X"], dtype=float)
        Y = np.asarray(field["Y"], dtype=float)
        U = np.asarray(field["U"], dtype=float)[:, :, time_index]
        V = np.asarray(field["V"], dtype=float)[:, :, time_index]
        if normalize:
            speed = np.hypot(U, V)
            speed[speed == 0] = 1.0
            U, V = U / speed, V / speed

        fig = ff.create_quiver(
            X.ravel(), Y.ravel(), U.ravel(), V.ravel(), scale=scale, name="velocity"
        )
        fig.data[0].line.color = PLOTLY_COLORS[0]
        t = np.atleast_1d(field["t"])[time_index]
        self._layout(fig, title or self._title("Velocity", [t]), **kwargs)
        return fig

    def plot_polar(
        self,
        field: PolarField,
        time_index: int = 0,
        n_contours: int = 10,
        title: Optional[str] = None,
        **kwargs,
    ) -> go.Figure:
        """
        Velocity direction as a cyclic-colour heatmap, speed as contour lines.
        """
        X = np.asarray(field["X"], dtype=float)
        Y = np.asarray(field["Y"], dtype=float)
        xi, yi = X[:, 0], Y[0, :]
        angle = np.asarray(field["angle"], dtype=float)[:, :, time_index]
        magnitude = np.asarray(field["magnitude"], dtype=float)[:, :, time_index]

        fig = go.Figure()
        fig.add_trace(
            go.Heatmap(
                x=xi,
                y=yi,
                z=angle.T,
                zmin=-np.pi,
                zmax=np.pi,
                colorscale="HSV",
                colorbar=dict(title="angle [rad]"),
                name="angle",
            )
        )
        fig.add_trace(
            go.Contour(
                x=xi,
                y=yi,
                z=magnitude.T,
                ncontours=n_contours,
                contours=dict(coloring="none", showlabels=True),
                line=dict(color="black", width=1),
                showscale=False,
                name="log10 speed" if field["logarithmic"] else "speed",
            )
        )
        t = np.atleast_1d(field["t"])[time_index]
        self._layout(fig, title or self._title("Velocity angle", [t]), **kwargs)
        return fig

    # =========================================================================
    # Trajectories
    # =========================================================================

    def plot_trajectories(
        self,
        x: StateTrajectory,
        state_names: Tuple[str, str] = ("x", "y"),
        show_start: bool = True,
        title: Optional[str] = None,
        **kwargs,
    ) -> go.Figure:
        """
        2D phase portrait of trajectories.

        Parameters
        ----------
        x : StateTrajectory
            (2, L, N) trajectories as returned by flow.trajectory(), or a
            single trajectory (2, L)
        state_names : Tuple[str, str]
            Axis titles
        show_start : bool
            Mark initial points

        Examples
        --------
        >>> x, t = flow.trajectory(x0, T=20.0)
        >>> fig = flow.plotter.plot_trajectories(x)
        """
        x = np.asarray(x, dtype=float)
        if x.ndim == 2:
            x = x[:, :, np.newaxis]
        if x.ndim != 3 or x.shape[0] != 2:
            raise ValidationError(
                f"plot_trajectories requires (2, L, N) trajectories, got shape {x.shape}"
            )

        n = x.shape[2]
        colors = self._get_colors(n)
        fig = go.Figure()
        for i in range(n):
            fig.add_trace(
                go.Scatter(
                    x=x[0, :, i],
                    y=x[1, :, i],
                    mode="lines",
                    name=f"Trajectory {i + 1}",
                    line=dict(color=colors[i], width=2),
                    showlegend=n <= 10,
                )
            )

        if show_start:
            fig.add_trace(
                go.Scatter(
                    x=x[0, 0, :],
                    y=x[1, 0, :],
                    mode="markers",
                    name="Start",
                    marker=dict(color="green", size=8, symbol="circle"),
                )
            )

        self._layout(
            fig,
            title or self._title("Trajectories", []),
            xaxis_title=state_names[0],
            yaxis_title=state_names[1],
            **kwargs,
        )
        return fig

    # =========================================================================
    # Helpers
    # =========================================================================

    def _axes(self, field) -> Tuple[np.ndarray, np.ndarray]:
        X = np.asarray(field["X"], dtype=float)
        Y = np.asarray(field["Y"], dtype=float)
        return X[:, 0], Y[0, :]

    def _title(self, name: str, times) -> str:
        prefix = f"{self.label}: " if self.label else ""
        if len(times) == 1:
            return f"{prefix}{name}, t = {float(times[0]):.2f}"
        return f"{prefix}{name}"

    def _get_colors(self, n_colors: int) -> List[str]:
        return [PLOTLY_COLORS[i % len(PLOTLY_COLORS)] for i in range(n_colors)]

    def _add_time_frames(self, fig: go.Figure, times: np.ndarray, make_trace) -> None:
        """Animation frames with play button and slider, one per time."""
        if len(times) < 2:
            return

        fig.frames = [
            go.Frame(data=[make_trace(k)], name=f"{t:.4g}") for k, t in enumerate(times)
        ]
        steps = [
            dict(
                method="animate",
                label=f"{t:.2f}",
                args=[[f"{t:.4g}"], dict(mode="immediate", frame=dict(duration=0))],
            )
            for t in times
        ]
        fig.update_layout(
            sliders=[dict(steps=steps, currentvalue=dict(prefix="t = "))],
            updatemenus=[
                dict(
                    type="buttons",
                    showactive=False,
                    buttons=[
                        dict(
                            label="Play",
                            method="animate",
                            args=[None, dict(frame=dict(duration=1000 // 15), fromcurrent=True)],
                        )
                    ],
                )
            ],
        )

    def _layout(self, fig: go.Figure, title: str, **kwargs) -> None:
        fig.update_layout(
            title=title,
            template="plotly_white",
            width=kwargs.pop("width", 700),
            height=kwargs.pop("height", 600),
            **kwargs,
        )
        # Equal aspect ratio for state-space plots
        fig.update_yaxes(scaleanchor="x", scaleratio=1)


__all__ = ["FlowFieldPlotter"]
