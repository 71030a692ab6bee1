GENDER_CHOICES = (
    ('Male', 'Male'),
    ('Female', 'Female'),
    ('Rather not say', 'Rather not say'),
)
MOBILE_NETWORK_CHOICES = (
    ('Mobilink', 'Mobilink'),
    ('Telenor', 'Telenor'),
    ('Ufone', 'Ufone'),
    ('Warid', 'Warid'),
    ('Zong', 'Zong'),
)

# Workflow order: APPLICANT > LSO > LSM > DO > LSM2 > TL > DEO > DG > Download License
USER_GROUPS = (
    ('APPLICANT', 'APPLICANT'),
    ('LSO', 'LSO'),
    ('LSM', 'LSM'),
    ('DO', 'DO'),
    ('LSM2', 'LSM2'),
    ('TL', 'TL'),
    ('DEO', 'DEO'),
    ('DG', 'DG'),
    ('Download License', 'Download License'),
)
# Groups a district officer sees counts for on the DO dashboard.
USER_GROUPS_DO = (
    ('APPLICANT', 'APPLICANT'),
    ('DO', 'DO'),
    ('LSM2', 'LSM2'),
    ('TL', 'TL'),
    ('DEO', 'DEO'),
    ('DG', 'DG'),
    ('Download License', 'Download License'),
)
REVIEW_GROUPS = ['LSO', 'LSM', 'LSM2', 'TL', 'DO', 'DEO', 'DG', 'Download License']
PMC_GROUPS = ['LSO', 'LSM', 'LSM2', 'TL']

REG_TYPE_CHOICES = [
    ('Producer', 'Producer'),
    ('Consumer', 'Consumer'),
    ('Recycler', 'Recycler'),
    ('Collector', 'Collector'),
]
REG_TYPE_ORDER = ['Producer', 'Consumer', 'Collector', 'Recycler']

APPLICATION_STATUS_CHOICES = [
    ('Created', 'Created'),
    ('Fee Challan', 'Fee Challan'),
    ('Submitted', 'Submitted'),
    ('In Review', 'In Review'),
    ('Approved', 'Approved'),
    ('Rejected', 'Rejected'),
    ('In Process', 'In Process'),
    ('Completed', 'Completed'),
]
ENTITY_TYPE_CHOICES = [
    ('Individual', 'Individual'),
    ('Company', 'Company/Corporation/Partnership'),
]
BUSINESS_REGISTRATION_CHOICES = [
    ('sole_proprietorship', 'Sole Proprietorship'),
    ('aop', 'Association of Persons (AOP)'),
    ('public_ltd', 'Limited Company: Public Ltd'),
    ('private_ltd', 'Limited Company: Private Ltd'),
    ('single_member', 'Limited Company: Single Member'),
]
IMPORT_BOUGHT = [
    ('imported', 'Imported'),
    ('bought', 'Bought'),
]
YES_NO_CHOICES = [('Yes', 'Yes'), ('No', 'No')]
AVAILABILITY_CHOICES = [('Available', 'Available'), ('Not Available', 'Not Available')]

FINE_RECOVERY_STATUS_CHOICES = [
    ('Pending', 'Pending'),
    ('Partial', 'Partial'),
    ('Recovered', 'Recovered'),
]
COMMITTEE_DOCUMENT_CHOICES = [
    ('Notification', 'Notification'),
    ('Minutes of Meeting', 'Minutes of Meeting'),
]

PAYMENT_STATUS_CHOICES = [
    ('UNPAID', 'UNPAID'),
    ('PAID', 'PAID'),
]

FEE_VERIFICATION_DOCUMENT = 'Fee Verification from Treasury/District Accounts Office'
IDENTITY_DOCUMENT = 'Identity Document'

# Amounts in PKR
fee_structure = {
    'Producer': {
        'upto_5_machines': 50000,
        'from_6_to_10_machines': 100000,
        'more_than_10_machines': 300000,
    },
    'Consumer': {'Company': 200000, 'Individual': 100000},
    'Collector': {'Company': 1000, 'Individual': 500},
    'Recycler': {'Company': 50000, 'Individual': 25000},
}

ALERT_TYPE_CHOICES = [
    ('APPLICATION_STATUS', 'Application Status'),
    ('PAYMENT_DUE', 'Payment Due'),
    ('PAYMENT_RECEIVED', 'Payment Received'),
    ('LICENSE_READY', 'License Ready'),
    ('DOCUMENT_REQUIRED', 'Document Required'),
    ('INSPECTION', 'Inspection'),
    ('SYSTEM', 'System'),
]
ALERT_PRIORITY_CHOICES = [
    ('LOW', 'Low'),
    ('MEDIUM', 'Medium'),
    ('HIGH', 'High'),
    ('URGENT', 'Urgent'),
]
ALERT_STATUS_CHOICES = [
    ('PENDING', 'Pending'),
    ('SENT', 'Sent'),
    ('FAILED', 'Failed'),
]
ALERT_CHANNELS = ['EMAIL', 'SMS', 'IN_APP', 'WHATSAPP']

CLUB_GENDER_CHOICES = (
    ('Boys', 'Boys'),
    ('Girls', 'Girls'),
)
CLUB_LEVEL_CHOICES = (
    ('Primary', 'Primary'),
    ('Middle', 'Middle'),
    ('High School', 'High School'),
    ('High. Sec', 'High. Sec'),
)
