import uuid
from django.db import models


class Patient(models.Model):
    # 登记时分配的患者编号（如 KBR-IP-2025-001），不可修改
    id = models.CharField(primary_key=True, max_length=64, editable=False)
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32, blank=True, default='')
    condition = models.CharField(max_length=200, blank=True, null=True)
    doctor = models.CharField(max_length=200, blank=True, null=True)
    admission_date = models.DateTimeField(blank=True, null=True)
    payment_details = models.JSONField(blank=True, null=True)
    medications = models.JSONField(default=list, blank=True)
    tests = models.JSONField(default=list, blank=True)
    consultations = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patients'

    def to_document(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'condition': self.condition,
            'doctor': self.doctor,
            'admissionDate': self.admission_date.isoformat() if self.admission_date else None,
            'paymentDetails': self.payment_details,
            'medications': self.medications or [],
            'tests': self.tests or [],
            'consultations': self.consultations or [],
        }


class Document(models.Model):
    COLLECTION_CHOICES = [
        ('payments', 'Payments'),
        ('appointments', 'Appointments'),
        ('invoices', 'Invoices'),
        ('room_charges', 'Room charges'),
        ('medical_history', 'Medical history'),
        ('reports', 'Reports'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    collection = models.CharField(max_length=32, choices=COLLECTION_CHOICES, db_index=True)
    # 文档里的 patientId 原样冗余一份用于过滤，可能为空（只有姓名 / 电话的记录）
    patient_id = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    data = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'documents'
