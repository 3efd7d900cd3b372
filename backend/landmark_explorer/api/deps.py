from __future__ import annotations

from fastapi import Request

from landmark_explorer.errors import TourStateError
from landmark_explorer.features.result_view import ResultView
from landmark_explorer.tour.session import TourSession
from landmark_explorer.workflows.tour_stop import TourStepMachine


def get_session(request: Request) -> TourSession:
    return request.app.state.session


def get_machine(request: Request) -> TourStepMachine:
    return request.app.state.machine


def get_view(request: Request) -> ResultView:
    """Widgets of the displayed stop; 409 when nothing is on screen."""
    view = get_session(request).view
    if view is None:
        raise TourStateError("No tour stop is being displayed")
    return view
