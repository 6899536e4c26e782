import logging
import os

from django.db.models import F, Max
from django.http import FileResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .exceptions import (
    PersistenceError,
    RefreshInProgressError,
    RenderError,
    UpstreamFetchError,
    UpstreamParseError,
)
from .models import Country
from .serializers import CountrySerializer
from . import services, utils

logger = logging.getLogger(__name__)

ALLOWED_FILTERS = {
    "region": "region__iexact",
    "currency": "currency_code__iexact",
}

SORT_FIELDS = {
    "gdp": "estimated_gdp",
    "population": "population",
    "name": "name",
}


@api_view(['POST'])
def refresh_countries(request):
    """
    POST /countries/refresh
    Fetch countries and exchange rates, then update or create cached data.
    """
    try:
        report = services.refresh_country_data()
    except (UpstreamFetchError, UpstreamParseError) as e:
        logger.error("Refresh aborted: %s", e)
        return Response(
            {"error": "External data source unavailable", "details": f"Could not fetch data from {e.source}"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except RefreshInProgressError as e:
        return Response({"error": str(e)}, status=status.HTTP_409_CONFLICT)
    except (PersistenceError, RenderError) as e:
        logger.exception("Refresh failed")
        return Response(
            {"error": "Internal server error", "details": str(e)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return Response({"message": "Refresh successful", **report.as_dict()}, status=status.HTTP_201_CREATED)


def _order_by(sort_param):
    field, _, direction = sort_param.rpartition("_")
    if field not in SORT_FIELDS or direction not in ("asc", "desc"):
        return None
    expr = F(SORT_FIELDS[field])
    if direction == "desc":
        return expr.desc(nulls_last=True)
    return expr.asc(nulls_last=True)


@api_view(['GET'])
def list_countries(request):
    """
    GET /countries
    Filters:
      - ?region=Africa, ?currency=NGN (case-insensitive)
    Sorting:
      - ?sort=<gdp|population|name>_<asc|desc>, nulls always last
    Default:
      - Ordered by id ascending.
    """
    qs = Country.objects.all()

    for key in request.GET.keys():
        if key == "sort":
            continue
        if key not in ALLOWED_FILTERS:
            return Response(
                {"error": "Validation failed", "details": {key: "is not a valid filter"}},
                status=status.HTTP_400_BAD_REQUEST
            )
        value = request.GET.get(key)
        if not value:
            return Response(
                {"error": "Validation failed", "details": {key: "is required"}},
                status=status.HTTP_400_BAD_REQUEST
            )
        qs = qs.filter(**{ALLOWED_FILTERS[key]: value})

    sort_param = request.GET.get("sort")
    if sort_param:
        ordering = _order_by(sort_param)
        if ordering is None:
            return Response(
                {"error": "Validation failed",
                 "details": {"sort": "invalid format (use <field>_asc or <field>_desc)"}},
                status=status.HTTP_400_BAD_REQUEST,
            )
        qs = qs.order_by(ordering, "id")
    else:
        qs = qs.order_by("id")

    serializer = CountrySerializer(qs, many=True)
    return Response(serializer.data)


@api_view(['GET', 'DELETE'])
def country_detail(request, name):
    """
    GET /countries/:name  -> return 404 JSON if not found
    DELETE /countries/:name -> delete, return 204 or 404
    """
    try:
        country = Country.objects.get(name__iexact=name)
    except Country.DoesNotExist:
        return Response({"error": "Country not found"}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        serializer = CountrySerializer(country)
        return Response(serializer.data)
    else:  # DELETE
        country.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
def get_status(request):
    """
    GET /status -> { total_countries, last_refreshed_at }
    last_refreshed_at is taken as the max(last_refreshed_at) across records (or null)
    """
    total = Country.objects.count()
    last = Country.objects.aggregate(last=Max("last_refreshed_at"))["last"]
    return Response({
        "total_countries": total,
        "last_refreshed_at": last.isoformat() if last else None,
    })


@api_view(['GET'])
def get_summary_image(request):
    """
    GET /countries/image
    Serve the summary image written by the last refresh.
    """
    path = utils.get_summary_image_path()
    if not os.path.exists(path):
        return Response({"error": "Summary image not found"}, status=status.HTTP_404_NOT_FOUND)
    return FileResponse(open(path, 'rb'), content_type='image/png')
