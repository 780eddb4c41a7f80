from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..services.audit import log_action
from ..services.files import delete_upload, file_dict, store_upload


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def upload_file(request):
    obj = store_upload(request.user, request.FILES.get('file'))
    log_action(user=request.user, action='file_upload', object_type='uploaded_file',
               object_id=obj.id, detail={'mime': obj.mime, 'size': obj.size},
               ip=request.META.get('REMOTE_ADDR'))
    return Response({'ok': True, **file_dict(obj, request)}, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_file(request, file_id: int):
    delete_upload(request.user, file_id)
    log_action(user=request.user, action='file_delete', object_type='uploaded_file',
               object_id=file_id, ip=request.META.get('REMOTE_ADDR'))
    return Response({'ok': True})
