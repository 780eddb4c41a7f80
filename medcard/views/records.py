"""
Medical record endpoints.

Listing returns ``{meta: {page, limit, total}, data}``; deleted records
never appear in any response.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.records import RecordListQuerySerializer, RecordSerializer, RecordWriteSerializer
from ..services import records as record_service
from ..services.audit import log_action


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def records(request):
    if request.method == 'POST':
        s = RecordWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        record = record_service.create_record(request.user, dict(s.validated_data))
        log_action(user=request.user, action='record_create', object_type='medical_record',
                   object_id=record.id, ip=request.META.get('REMOTE_ADDR'))
        return Response({'ok': True, 'data': RecordSerializer(record).data}, status=status.HTTP_201_CREATED)

    q = RecordListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data['page'], q.validated_data['limit']
    items, total = record_service.list_records(
        request.user, user_id=q.validated_data.get('user_id'), page=page, limit=limit
    )
    return Response({
        'ok': True,
        'meta': {'page': page, 'limit': limit, 'total': total},
        'data': RecordSerializer(items, many=True).data,
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def record_detail(request, record_id: str):
    if request.method == 'GET':
        record = record_service.get_record(request.user, record_id)
        return Response({'ok': True, 'data': RecordSerializer(record).data})

    if request.method == 'PATCH':
        s = RecordWriteSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)
        data.pop('user_id', None)
        record = record_service.update_record(request.user, record_id, data)
        log_action(user=request.user, action='record_update', object_type='medical_record',
                   object_id=record.id, detail={'fields': sorted(data)}, ip=request.META.get('REMOTE_ADDR'))
        return Response({'ok': True, 'data': RecordSerializer(record).data})

    record = record_service.delete_record(request.user, record_id)
    log_action(user=request.user, action='record_delete', object_type='medical_record',
               object_id=record.id, ip=request.META.get('REMOTE_ADDR'))
    return Response({'ok': True})
