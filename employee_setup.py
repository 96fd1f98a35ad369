#!/usr/bin/env python3
"""
Timeclock Employee Setup Script
Run this to initialize the record store and manage employee accounts offline
"""

import sys
from getpass import getpass
from typing import Optional

from pydantic import ValidationError as ModelValidationError

from sheet_timeclock.core.config import ServerConfig
from sheet_timeclock.core.database import RecordStore, init_store, seed_admin
from sheet_timeclock.core.errors import TimeclockError
from sheet_timeclock.models.admin import EmployeeCreate
from sheet_timeclock.services import employee_service

DEMO_PASSWORD = "demo1234"
DEMO_EMPLOYEES = [
    ("Alice Novakova", "alice@example.com", 250),
    ("Bob Dvorak", "bob@example.com", 200),
    ("Carol Svobodova", "carol@example.com", 300),
]

def add_employee(store: RecordStore, name: str, email: str, password: str, hourly_rate) -> Optional[str]:
    """Add one employee; returns the new id or None on failure"""
    try:
        data = EmployeeCreate(name=name, email=email, password=password, hourly_rate=hourly_rate)
        employee = employee_service.add_employee(store, data)
    except ModelValidationError as e:
        for error in e.errors():
            print(f"❌ {'.'.join(str(p) for p in error['loc'])}: {error['msg']}")
        return None
    except TimeclockError as e:
        print(f"❌ Error adding employee {name}: {e.message}")
        return None
    
    print(f"✅ Added employee: {employee.name} <{employee.email}> ({employee.hourly_rate:g} CZK/h)")
    return employee.id

def reset_password(store: RecordStore, email: str, new_password: str) -> bool:
    employee = employee_service.find_by_email(store, email)
    if employee is None:
        print(f"❌ Employee {email} not found")
        return False
    if not new_password:
        print("❌ Password must not be empty")
        return False
    
    employee_service.reset_credential(store, employee.id, new_password)
    print(f"✅ Password reset for {employee.name} <{employee.email}>")
    return True

def list_employees(store: RecordStore):
    """Print all employees in the record store"""
    employees = employee_service.list_employees(store)
    
    if not employees:
        print("No employees found in the record store")
        return
    
    print("\nCurrent Employees:")
    print("-" * 80)
    print(f"{'Name':<22} {'Email':<30} {'Rate/h':<8} {'Admin':<7} {'Created'}")
    print("-" * 80)
    
    for emp in employees:
        admin = "✅ Yes" if emp.is_admin else "No"
        print(f"{emp.name:<22} {emp.email:<30} {emp.hourly_rate:<8g} {admin:<7} {emp.created_at.date().isoformat()}")

def quick_setup_demo(store: RecordStore):
    """Add some demo employees for testing"""
    print("Adding demo employees for testing...")
    
    for name, email, rate in DEMO_EMPLOYEES:
        add_employee(store, name, email, DEMO_PASSWORD, rate)
    
    print(f"\nDemo password for all accounts: {DEMO_PASSWORD}")

def interactive_setup(store: RecordStore):
    """Interactive employee setup"""
    print("Timeclock System - Employee Setup")
    print("=" * 40)
    
    while True:
        print("\nOptions:")
        print("1. Add new employee")
        print("2. List all employees")
        print("3. Reset employee password")
        print("4. Quick demo setup")
        print("5. Exit")
        
        choice = input("\nSelect option (1-5): ").strip()
        
        if choice == '1':
            name = input("Employee name: ").strip()
            email = input("Email: ").strip()
            password = getpass("Password: ")
            rate = input("Hourly rate (CZK): ").strip()
            
            try:
                add_employee(store, name, email, password, float(rate))
            except ValueError:
                print("❌ Hourly rate must be a number")
        
        elif choice == '2':
            list_employees(store)
        
        elif choice == '3':
            email = input("Employee email: ").strip()
            reset_password(store, email, getpass("New password: "))
        
        elif choice == '4':
            quick_setup_demo(store)
        
        elif choice == '5':
            break
        
        else:
            print("❌ Invalid option")

def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    
    store = init_store(ServerConfig.DATA_DIR)
    if ServerConfig.SEED_ADMIN:
        seed_admin(store)
    
    if not argv:
        interactive_setup(store)
        return 0
    
    command = argv[0]
    if command == "--demo":
        quick_setup_demo(store)
        list_employees(store)
    elif command == "--list":
        list_employees(store)
    elif command == "--add" and len(argv) == 5:
        _, name, email, password, rate = argv
        try:
            hourly_rate = float(rate)
        except ValueError:
            print("❌ Hourly rate must be a number")
            return 1
        return 0 if add_employee(store, name, email, password, hourly_rate) else 1
    elif command == "--reset-password" and len(argv) == 3:
        return 0 if reset_password(store, argv[1], argv[2]) else 1
    else:
        print("Usage:")
        print("  python employee_setup.py                                   # Interactive setup")
        print("  python employee_setup.py --demo                            # Add demo employees")
        print("  python employee_setup.py --list                            # List current employees")
        print("  python employee_setup.py --add NAME EMAIL PASSWORD RATE    # Add an employee")
        print("  python employee_setup.py --reset-password EMAIL PASSWORD   # Reset a password")
        return 1
    
    return 0

if __name__ == "__main__":
    sys.exit(main())
